# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Directory fingerprints used by the publish pipeline.

Two different fingerprints are computed here:

content_hash
    Digest of file contents and relative layout only. Used to name artifacts
    (e.g. ``src-<hash>.zip``) so that a custom resource sees a new name only
    when the content really changed.

change_signature
    Digest of file modification times plus the destination coordinates. Used
    to decide whether a package must be rebuilt and re-uploaded.
"""

import hashlib
import os
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from loguru import logger

from lma_publish.errors import FileSystemError
from lma_publish.models import DestinationCoordinates

PathLike = Union[str, os.PathLike]

# File holding the last published change signature of a package
RECORD_FILE_NAME = ".checksum"

# Directories that never contribute to an artifact's content hash
CONTENT_HASH_EXCLUDED_DIRS = frozenset({"node_modules", "build"})

# Directories that are regenerated by builds and must not trigger a republish
CHANGE_SIGNATURE_EXCLUDED_DIRS = frozenset({"python", "node_modules", "build"})

CONTENT_HASH_LENGTH = 16


def get_file_checksum(file_path: PathLike) -> str:
    """Get SHA256 checksum of a file"""
    sha256_hash = hashlib.sha256()
    try:
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
    except OSError as e:
        raise FileSystemError(f"Unable to read {file_path}: {e}") from e
    return sha256_hash.hexdigest()


def list_files(
    directory: PathLike,
    excluded_dirs: Iterable[str] = (),
    excluded_files: Iterable[str] = (),
) -> List[Tuple[str, str]]:
    """
    List the regular files below a directory.

    Any directory whose name is in ``excluded_dirs`` is pruned together with
    its whole subtree, at any depth. Symbolic links are not followed and are
    not listed.

    Args:
        directory: Root of the tree to enumerate
        excluded_dirs: Directory names to prune
        excluded_files: File names to skip wherever they appear

    Returns:
        List of (relative posix path, absolute path) tuples in walk order

    Raises:
        FileSystemError: If the directory is missing or cannot be read
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileSystemError(f"Package directory not found: {root}")

    excluded_dirs = set(excluded_dirs)
    excluded_files = set(excluded_files)

    def _raise(error: OSError):
        raise FileSystemError(f"Unable to read directory {error.filename}: {error}") from error

    files = []
    for current, dirs, names in os.walk(root, onerror=_raise):
        # Prune in place so os.walk never descends into excluded trees
        dirs[:] = [d for d in dirs if d not in excluded_dirs]
        for name in names:
            if name in excluded_files:
                continue
            full_path = os.path.join(current, name)
            if os.path.islink(full_path) or not os.path.isfile(full_path):
                continue
            relative_path = os.path.relpath(full_path, root).replace(os.sep, "/")
            files.append((relative_path, full_path))
    return files


def content_hash(
    directory: PathLike,
    excluded_dirs: Iterable[str] = CONTENT_HASH_EXCLUDED_DIRS,
    excluded_files: Iterable[str] = (RECORD_FILE_NAME,),
) -> str:
    """
    Compute the content hash of a directory tree.

    Files are ordered case-insensitively by relative path (ties broken by the
    exact path) so the result does not depend on filesystem listing order.
    Each file contributes a ``<sha256>  <relative path>`` line, and the first
    16 hex characters of the digest of all lines are returned. The publish
    record is pipeline metadata and never part of the content.
    """
    files = list_files(directory, excluded_dirs, excluded_files)
    files.sort(key=lambda item: (item[0].casefold(), item[0]))

    lines = []
    for relative_path, full_path in files:
        lines.append(f"{get_file_checksum(full_path)}  {relative_path}\n")

    digest = hashlib.sha256("".join(lines).encode("utf-8")).hexdigest()
    result = digest[:CONTENT_HASH_LENGTH]
    logger.debug(f"Content hash of {directory} over {len(files)} files: {result}")
    return result


def timestamp_digest(
    directory: PathLike,
    excluded_dirs: Iterable[str] = CHANGE_SIGNATURE_EXCLUDED_DIRS,
    record_name: str = RECORD_FILE_NAME,
) -> str:
    """Digest of the modification times of every file in a package."""
    files = list_files(directory, excluded_dirs, excluded_files=(record_name,))
    files.sort(key=lambda item: item[0])

    lines = []
    for relative_path, full_path in files:
        try:
            mtime = os.stat(full_path).st_mtime_ns
        except OSError as e:
            raise FileSystemError(f"Unable to stat {full_path}: {e}") from e
        lines.append(f"{relative_path} {mtime}\n")

    return hashlib.sha256("".join(lines).encode("utf-8")).hexdigest()


def change_signature(
    directory: PathLike,
    destination: DestinationCoordinates,
    excluded_dirs: Iterable[str] = CHANGE_SIGNATURE_EXCLUDED_DIRS,
    record_name: str = RECORD_FILE_NAME,
) -> str:
    """
    Compute the change signature of a package directory.

    The signature folds the destination (bucket, prefix and version, region)
    into the timestamp digest, so a package is republished when it targets a
    different location even if its files are untouched.
    """
    dir_checksum = timestamp_digest(directory, excluded_dirs, record_name)
    combined = f"{destination.key} {dir_checksum}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()
