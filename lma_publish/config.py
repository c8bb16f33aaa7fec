# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Settings for a publish run.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from lma_publish.errors import ToolingPreconditionError
from lma_publish.models import DestinationCoordinates

DEFAULT_STAGING_DIR = "/tmp/lma"
MAIN_TEMPLATE = "lma-main.yaml"
STACK_NAME = "LMA"


@dataclass
class PublishSettings:
    """Inputs of a publish run plus the values derived from them."""

    bucket_basename: str
    prefix: str
    region: str
    version: str
    public: bool = False
    project_root: Path = field(default_factory=Path.cwd)
    staging_dir: Path = Path(DEFAULT_STAGING_DIR)
    main_template: str = MAIN_TEMPLATE
    stack_name: str = STACK_NAME

    def __post_init__(self):
        self.prefix = self.prefix.rstrip("/")  # Remove trailing slash
        self.project_root = Path(self.project_root)
        self.staging_dir = Path(self.staging_dir)
        if not self.bucket_basename:
            raise ValueError("Cfn bucket name is a required parameter")
        if not self.prefix:
            raise ValueError("Prefix is a required parameter")
        if not self.region:
            raise ValueError("Region is a required parameter")

    @classmethod
    def from_args(
        cls,
        bucket_basename: str,
        prefix: str,
        region: str,
        public: bool = False,
        project_root=None,
        staging_dir=None,
    ) -> "PublishSettings":
        """Build settings, reading the version from <project_root>/VERSION."""
        project_root = Path(project_root) if project_root else Path.cwd()
        return cls(
            bucket_basename=bucket_basename,
            prefix=prefix,
            region=region,
            version=read_version(project_root),
            public=public,
            project_root=project_root,
            staging_dir=Path(
                staging_dir or os.environ.get("LMA_STAGING_DIR", DEFAULT_STAGING_DIR)
            ),
        )

    @property
    def bucket(self) -> str:
        return f"{self.bucket_basename}-{self.region}"

    @property
    def prefix_and_version(self) -> str:
        return f"{self.prefix}/{self.version}"

    @property
    def destination(self) -> DestinationCoordinates:
        return DestinationCoordinates(
            bucket=self.bucket,
            prefix_and_version=self.prefix_and_version,
            region=self.region,
        )

    @property
    def main_template_key(self) -> str:
        return f"{self.prefix}/{self.main_template}"

    def child_environment(self) -> dict:
        """Environment for build scripts; they rely on AWS_DEFAULT_REGION."""
        env = os.environ.copy()
        env["AWS_DEFAULT_REGION"] = self.region
        return env


def read_version(project_root) -> str:
    version_file = Path(project_root) / "VERSION"
    try:
        return version_file.read_text().strip()
    except FileNotFoundError as e:
        raise ToolingPreconditionError(f"VERSION file not found: {version_file}") from e
    except OSError as e:
        raise ToolingPreconditionError(f"Unable to read VERSION file {version_file}: {e}") from e
