# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Data model for the publish pipeline.

This module defines the values passed between the checksum engine, the
change-tracking store, the orchestrator and the template finalizer.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from lma_publish.procedures import PackageProcedure


@dataclass(frozen=True)
class DestinationCoordinates:
    """Where a publish run puts its artifacts."""

    bucket: str  # Full bucket name, i.e. <basename>-<region>
    prefix_and_version: str  # e.g. lma/0.2.10
    region: str

    @property
    def key(self) -> str:
        """Identity string folded into every change signature."""
        return f"{self.bucket} {self.prefix_and_version} {self.region}"

    def s3_location(self, *parts: str) -> str:
        """Bucket-qualified location (no scheme) below the versioned prefix."""
        return "/".join([self.bucket, self.prefix_and_version, *parts])

    def https_url(self, key: str) -> str:
        return f"https://s3.{self.region}.amazonaws.com/{self.bucket}/{key}"


class PackageState(Enum):
    """Publish state of a single package."""

    PENDING = "PENDING"
    CHECK_CHANGED = "CHECK_CHANGED"
    SKIPPED = "SKIPPED"  # Unchanged since the last successful publish
    BUILDING = "BUILDING"
    UPLOADING = "UPLOADING"
    RECORD_SUCCESS = "RECORD_SUCCESS"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class Package:
    """A directory subtree that is checksummed and published on its own."""

    name: str
    path: Path
    procedure: "PackageProcedure"

    def __post_init__(self):
        self.path = Path(self.path)


@dataclass
class PackageRun:
    """State history of one package within an orchestrator run."""

    package: str
    state: PackageState = PackageState.PENDING
    history: List[PackageState] = field(default_factory=lambda: [PackageState.PENDING])
    signature: Optional[str] = None
    error: Optional[str] = None

    def transition(self, state: PackageState):
        self.state = state
        self.history.append(state)


@dataclass
class PublishReport:
    """Outcome of an orchestrator run."""

    runs: List[PackageRun] = field(default_factory=list)
    # Values produced by package procedures for template substitution
    resolved_tokens: Dict[str, str] = field(default_factory=dict)

    @property
    def published(self) -> List[str]:
        return [
            run.package
            for run in self.runs
            if PackageState.RECORD_SUCCESS in run.history
            and run.state == PackageState.DONE
        ]

    @property
    def skipped(self) -> List[str]:
        return [run.package for run in self.runs if PackageState.SKIPPED in run.history]

    @property
    def failed(self) -> List[str]:
        return [run.package for run in self.runs if run.state == PackageState.FAILED]


@dataclass
class CommandResult:
    """Result of an external process call."""

    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    cwd: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        return f"""Command failed: {" ".join(self.cmd)}
Working directory: {self.cwd or "."}
Return code: {self.returncode}

STDOUT:
{self.stdout}

STDERR:
{self.stderr}"""


@dataclass
class ValidationResult:
    """Answer from the template validation service."""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)
