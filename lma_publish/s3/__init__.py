# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
S3 artifact store used by the publish pipeline.

Every botocore failure is surfaced as a NetworkError; nothing is retried here.
"""

from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from lma_publish.errors import NetworkError


class S3ObjectStore:
    """Thin wrapper over the S3 client for a single artifacts bucket."""

    def __init__(self, bucket: str, region: str, s3_client=None):
        self.bucket = bucket
        self.region = region
        self._s3_client = s3_client

    @property
    def client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client("s3", region_name=self.region)
        return self._s3_client

    def ensure_bucket(self) -> bool:
        """
        Create the bucket (with versioning enabled) if it does not exist.

        Returns:
            True if the bucket was created, False if it already existed
        """
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.debug(f"Using existing bucket: {self.bucket}")
            return False
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code not in ("404", "NoSuchBucket", "NotFound"):
                raise NetworkError(
                    f"Error accessing bucket {self.bucket}: {e}", step="bucket"
                ) from e
        except BotoCoreError as e:
            raise NetworkError(
                f"Error accessing bucket {self.bucket}: {e}", step="bucket"
            ) from e

        logger.info(f"Creating s3 bucket: {self.bucket}")
        try:
            if self.region == "us-east-1":
                self.client.create_bucket(Bucket=self.bucket)
            else:
                self.client.create_bucket(
                    Bucket=self.bucket,
                    CreateBucketConfiguration={"LocationConstraint": self.region},
                )
            self.client.put_bucket_versioning(
                Bucket=self.bucket,
                VersioningConfiguration={"Status": "Enabled"},
            )
        except (ClientError, BotoCoreError) as e:
            raise NetworkError(
                f"Failed to create bucket {self.bucket}: {e}", step="bucket"
            ) from e
        return True

    def put(self, key: str, body: bytes, content_type: Optional[str] = None):
        kwargs = {"Bucket": self.bucket, "Key": key, "Body": body}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self.client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise NetworkError(
                f"Failed to upload s3://{self.bucket}/{key}: {e}", step="upload"
            ) from e
        logger.debug(f"Uploaded s3://{self.bucket}/{key}")

    def upload_file(self, local_path: str, key: str):
        try:
            self.client.upload_file(str(local_path), self.bucket, key)
        except (ClientError, BotoCoreError) as e:
            raise NetworkError(
                f"Failed to upload {local_path} to s3://{self.bucket}/{key}: {e}",
                step="upload",
            ) from e
        logger.debug(f"Uploaded {local_path} to s3://{self.bucket}/{key}")

    def list(self, prefix: str) -> List[str]:
        """List every key under a prefix, following pagination."""
        keys = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except (ClientError, BotoCoreError) as e:
            raise NetworkError(
                f"Failed to list s3://{self.bucket}/{prefix}: {e}", step="list"
            ) from e
        return keys

    def set_public_read(self, key: str):
        try:
            self.client.put_object_acl(Bucket=self.bucket, Key=key, ACL="public-read")
        except (ClientError, BotoCoreError) as e:
            raise NetworkError(
                f"Failed to set public-read ACL on s3://{self.bucket}/{key}: {e}",
                step="acl",
            ) from e
