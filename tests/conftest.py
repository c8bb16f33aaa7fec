# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Pytest configuration file for the lma_publish tests.
"""

from unittest.mock import MagicMock

import pytest

from lma_publish.config import PublishSettings
from lma_publish.models import DestinationCoordinates
from lma_publish.procedures import PublishContext


@pytest.fixture
def destination():
    return DestinationCoordinates(
        bucket="lma-artifacts-us-east-1",
        prefix_and_version="lma/0.2.10",
        region="us-east-1",
    )


@pytest.fixture
def settings(tmp_path):
    return PublishSettings(
        bucket_basename="lma-artifacts",
        prefix="lma",
        region="us-east-1",
        version="0.2.10",
        project_root=tmp_path / "project",
        staging_dir=tmp_path / "staging",
    )


@pytest.fixture
def context(settings):
    settings.project_root.mkdir(parents=True, exist_ok=True)
    settings.staging_dir.mkdir(parents=True, exist_ok=True)
    return PublishContext(
        settings=settings,
        runner=MagicMock(),
        object_store=MagicMock(),
        finalizer=MagicMock(),
        console=MagicMock(),
    )
