# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the change tracking store.
"""

from unittest.mock import MagicMock

import pytest

from lma_publish.change_tracking import ChangeTrackingStore
from lma_publish.checksum import content_hash
from lma_publish.errors import FileSystemError
from lma_publish.models import DestinationCoordinates, Package
from tests.helpers import touch, write_tree


@pytest.fixture
def package(tmp_path):
    path = write_tree(
        tmp_path / "lma-bedrockkb-stack",
        {
            "publish.sh": "#!/bin/bash\n",
            "template.yaml": "Resources: {}\n",
            "src/index.py": "def handler(event, context):\n    return {}\n",
        },
    )
    return Package(name="lma-bedrockkb-stack", path=path, procedure=MagicMock())


@pytest.mark.unit
class TestChangeTrackingStore:
    def test_first_run_reports_changed(self, package, destination):
        store = ChangeTrackingStore(destination)

        assert store.read_record(package) is None
        assert store.has_changed(package) is True

    def test_unchanged_after_record_published(self, package, destination):
        store = ChangeTrackingStore(destination)

        store.record_published(package)

        assert store.has_changed(package) is False

    def test_record_is_stored_next_to_package(self, package, destination):
        store = ChangeTrackingStore(destination)

        signature = store.record_published(package)

        record_file = package.path / ".checksum"
        assert record_file.read_text() == f"{signature}\n"
        assert store.read_record(package) == signature

    def test_record_published_is_idempotent(self, package, destination):
        store = ChangeTrackingStore(destination)

        first = store.record_published(package)
        second = store.record_published(package)

        assert first == second
        assert store.has_changed(package) is False

    def test_touched_file_reports_changed(self, package, destination):
        store = ChangeTrackingStore(destination)
        store.record_published(package)

        touch(package.path / "src" / "index.py")

        assert store.has_changed(package) is True

    def test_prefix_change_alone_reports_changed(self, package, destination):
        ChangeTrackingStore(destination).record_published(package)
        hash_before = content_hash(package.path)

        moved = DestinationCoordinates(
            bucket=destination.bucket,
            prefix_and_version="lma-staging/0.2.10",
            region=destination.region,
        )

        assert ChangeTrackingStore(moved).has_changed(package) is True
        assert content_hash(package.path) == hash_before

    def test_build_output_does_not_report_changed(self, package, destination):
        store = ChangeTrackingStore(destination)
        store.record_published(package)

        write_tree(package.path, {"build/template.yaml": "packaged", "python/lib.py": ""})

        assert store.has_changed(package) is False

    def test_stale_record_reports_changed(self, package, destination):
        store = ChangeTrackingStore(destination)
        (package.path / ".checksum").write_text("0" * 64 + "\n")

        assert store.has_changed(package) is True

    def test_missing_package_directory_raises(self, tmp_path, destination):
        store = ChangeTrackingStore(destination)
        missing = Package(name="missing", path=tmp_path / "missing", procedure=MagicMock())

        with pytest.raises(FileSystemError):
            store.has_changed(missing)

    def test_custom_record_name(self, package, destination):
        store = ChangeTrackingStore(destination, record_name=".publish_record")

        store.record_published(package)

        assert (package.path / ".publish_record").exists()
        assert not (package.path / ".checksum").exists()
        assert store.has_changed(package) is False
