# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Per-package publish records.

Each package directory holds a ``.checksum`` file with the change signature of
its last successful publish. The record is the only thing that lets a later
run skip the package, so it is written after a successful publish and never
otherwise.

Records are not locked; whole-pipeline runs against the same package
directories must be serialized by the caller.
"""

from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from lma_publish.checksum import (
    CHANGE_SIGNATURE_EXCLUDED_DIRS,
    RECORD_FILE_NAME,
    change_signature,
)
from lma_publish.errors import FileSystemError
from lma_publish.models import DestinationCoordinates, Package


class ChangeTrackingStore:
    """Reads and writes the publish record of each package."""

    def __init__(
        self,
        destination: DestinationCoordinates,
        excluded_dirs: Iterable[str] = CHANGE_SIGNATURE_EXCLUDED_DIRS,
        record_name: str = RECORD_FILE_NAME,
    ):
        self.destination = destination
        self.excluded_dirs = frozenset(excluded_dirs)
        self.record_name = record_name

    def record_path(self, package: Package) -> Path:
        return package.path / self.record_name

    def current_signature(self, package: Package) -> str:
        return change_signature(
            package.path, self.destination, self.excluded_dirs, self.record_name
        )

    def read_record(self, package: Package) -> Optional[str]:
        """Return the stored signature, or None when the package was never published."""
        record_file = self.record_path(package)
        if not record_file.exists():
            return None
        try:
            return record_file.read_text().strip()
        except OSError as e:
            raise FileSystemError(
                f"Unable to read publish record {record_file}: {e}",
                package=package.name,
                step="read record",
            ) from e

    def has_changed(self, package: Package) -> bool:
        """True if the package has no record or its signature differs from the record."""
        current = self.current_signature(package)
        previous = self.read_record(package)
        logger.debug(
            f"{package.name}: current signature {current}, recorded {previous or '<none>'}"
        )
        return current != previous

    def record_published(self, package: Package) -> str:
        """Persist the current signature of a successfully published package."""
        current = self.current_signature(package)
        record_file = self.record_path(package)
        try:
            record_file.write_text(f"{current}\n")
        except OSError as e:
            raise FileSystemError(
                f"Unable to write publish record {record_file}: {e}",
                package=package.name,
                step="record",
            ) from e
        logger.debug(f"Updated publish record for {package.name}: {record_file}")
        return current
