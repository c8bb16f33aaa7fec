# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Exception types raised by the publish pipeline.

Every error is fatal for the run. The CLI reports the message (naming the
failing package and step where known) and exits with a non-zero status.
"""

from typing import Optional


class PublishError(Exception):
    """Base class for all publish pipeline failures."""

    def __init__(
        self,
        message: str,
        package: Optional[str] = None,
        step: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.package = package
        self.step = step
        self.details = details

    def __str__(self) -> str:
        location = []
        if self.package:
            location.append(self.package)
        if self.step:
            location.append(self.step)
        if location:
            return f"[{' / '.join(location)}] {self.message}"
        return self.message


class ToolingPreconditionError(PublishError):
    """A required external tool is missing or has an incompatible version."""


class FileSystemError(PublishError):
    """A package directory or file could not be read or written."""


class BuildProcedureError(PublishError):
    """A package build, package or upload command exited unsuccessfully."""


class ValidationError(PublishError):
    """A template was rejected or still contains unresolved tokens."""


class NetworkError(PublishError):
    """An object store or CloudFormation API call failed."""
