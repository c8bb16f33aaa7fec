# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the S3 object store.
"""

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from lma_publish.errors import NetworkError
from lma_publish.s3 import S3ObjectStore


def client_error(code, operation="HeadBucket"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.mark.unit
class TestEnsureBucket:
    def test_existing_bucket(self):
        s3_client = Mock()
        s3_client.head_bucket.return_value = {}
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        assert store.ensure_bucket() is False
        s3_client.create_bucket.assert_not_called()

    def test_creates_bucket_in_us_east_1(self):
        s3_client = Mock()
        s3_client.head_bucket.side_effect = client_error("404")
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        assert store.ensure_bucket() is True
        s3_client.create_bucket.assert_called_once_with(Bucket="lma-artifacts-us-east-1")
        s3_client.put_bucket_versioning.assert_called_once_with(
            Bucket="lma-artifacts-us-east-1",
            VersioningConfiguration={"Status": "Enabled"},
        )

    def test_creates_bucket_with_location_constraint(self):
        s3_client = Mock()
        s3_client.head_bucket.side_effect = client_error("404")
        store = S3ObjectStore("lma-artifacts-eu-west-1", "eu-west-1", s3_client)

        store.ensure_bucket()

        s3_client.create_bucket.assert_called_once_with(
            Bucket="lma-artifacts-eu-west-1",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-1"},
        )

    def test_access_denied_raises(self):
        s3_client = Mock()
        s3_client.head_bucket.side_effect = client_error("403")
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        with pytest.raises(NetworkError):
            store.ensure_bucket()
        s3_client.create_bucket.assert_not_called()

    def test_create_failure_raises(self):
        s3_client = Mock()
        s3_client.head_bucket.side_effect = client_error("404")
        s3_client.create_bucket.side_effect = client_error("BucketAlreadyExists", "CreateBucket")
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        with pytest.raises(NetworkError, match="Failed to create bucket"):
            store.ensure_bucket()


@pytest.mark.unit
class TestObjectOperations:
    def test_list_follows_pagination(self):
        s3_client = Mock()
        paginator = Mock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "lma/0.2.10/a.zip"}, {"Key": "lma/0.2.10/b.yaml"}]},
            {"Contents": [{"Key": "lma/0.2.10/c.yaml"}]},
            {},
        ]
        s3_client.get_paginator.return_value = paginator
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        keys = store.list("lma/0.2.10")

        assert keys == ["lma/0.2.10/a.zip", "lma/0.2.10/b.yaml", "lma/0.2.10/c.yaml"]
        s3_client.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(
            Bucket="lma-artifacts-us-east-1", Prefix="lma/0.2.10"
        )

    def test_put(self):
        s3_client = Mock()
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        store.put("lma/lma-main.yaml", b"Resources: {}", content_type="application/x-yaml")

        s3_client.put_object.assert_called_once_with(
            Bucket="lma-artifacts-us-east-1",
            Key="lma/lma-main.yaml",
            Body=b"Resources: {}",
            ContentType="application/x-yaml",
        )

    def test_upload_failure_raises(self):
        s3_client = Mock()
        s3_client.upload_file.side_effect = client_error("AccessDenied", "PutObject")
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        with pytest.raises(NetworkError) as exc_info:
            store.upload_file("/tmp/lma/src-0123.zip", "lma/0.2.10/src-0123.zip")

        assert exc_info.value.step == "upload"

    def test_set_public_read(self):
        s3_client = Mock()
        store = S3ObjectStore("lma-artifacts-us-east-1", "us-east-1", s3_client)

        store.set_public_read("lma/lma-main.yaml")

        s3_client.put_object_acl.assert_called_once_with(
            Bucket="lma-artifacts-us-east-1", Key="lma/lma-main.yaml", ACL="public-read"
        )

    @patch("boto3.client")
    def test_client_created_lazily_for_region(self, mock_boto_client):
        store = S3ObjectStore("lma-artifacts-eu-west-1", "eu-west-1")
        mock_boto_client.assert_not_called()

        assert store.client is mock_boto_client.return_value
        mock_boto_client.assert_called_once_with("s3", region_name="eu-west-1")
