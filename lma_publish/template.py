# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Main template token substitution and validation.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from rich.console import Console

from lma_publish.errors import FileSystemError, NetworkError, ValidationError
from lma_publish.models import ValidationResult
from lma_publish.s3 import S3ObjectStore

ARTIFACT_BUCKET_TOKEN = "<ARTIFACT_BUCKET_TOKEN>"
ARTIFACT_PREFIX_TOKEN = "<ARTIFACT_PREFIX_TOKEN>"
VERSION_TOKEN = "<VERSION_TOKEN>"
REGION_TOKEN = "<REGION_TOKEN>"
BROWSER_EXTENSION_SRC_S3_LOCATION_TOKEN = "<BROWSER_EXTENSION_SRC_S3_LOCATION_TOKEN>"

# Any placeholder of the <SOMETHING_TOKEN> form left behind by substitution
UNRESOLVED_TOKEN_PATTERN = re.compile(r"<[A-Z][A-Z0-9_]*_TOKEN>")


def finalize(template_text: str, substitutions: Dict[str, str]) -> str:
    """Replace every occurrence of each token with its value."""
    for token, value in substitutions.items():
        template_text = template_text.replace(token, value)
    return template_text


def find_unresolved_tokens(template_text: str) -> List[str]:
    return sorted(set(UNRESOLVED_TOKEN_PATTERN.findall(template_text)))


class CloudFormationValidator:
    """Template validation backed by the CloudFormation ValidateTemplate API."""

    def __init__(self, region: str, cf_client=None):
        self.region = region
        self._cf_client = cf_client

    @property
    def client(self):
        if self._cf_client is None:
            self._cf_client = boto3.client("cloudformation", region_name=self.region)
        return self._cf_client

    def validate(self, template_url: str) -> ValidationResult:
        try:
            self.client.validate_template(TemplateURL=template_url)
        except ClientError as e:
            error = e.response.get("Error", {})
            if error.get("Code") == "ValidationError":
                return ValidationResult.rejected(error.get("Message", str(e)))
            raise NetworkError(
                f"Unable to validate {template_url}: {e}", step="validate"
            ) from e
        except BotoCoreError as e:
            raise NetworkError(
                f"Unable to validate {template_url}: {e}", step="validate"
            ) from e
        return ValidationResult.accepted()


class TemplateFinalizer:
    """Uploads templates and fails the run if CloudFormation rejects them."""

    def __init__(
        self,
        object_store: S3ObjectStore,
        validator: CloudFormationValidator,
        console: Optional[Console] = None,
    ):
        self.object_store = object_store
        self.validator = validator
        self.console = console or Console()

    def template_url(self, key: str) -> str:
        return f"https://s3.{self.object_store.region}.amazonaws.com/{self.object_store.bucket}/{key}"

    def validate(self, key: str, package: Optional[str] = None) -> str:
        """Validate an uploaded template and return its https URL."""
        template_url = self.template_url(key)
        self.console.print(f"[cyan]Validating template: {template_url}[/cyan]")
        result = self.validator.validate(template_url)
        if not result.ok:
            raise ValidationError(
                f"Template {template_url} rejected: {result.reason}",
                package=package,
                step="validate",
            )
        self.console.print("[green]✅ Template validation passed[/green]")
        return template_url

    def publish(
        self,
        template_path: Path,
        key: str,
        substitutions: Dict[str, str],
        staging_dir: Path,
    ) -> str:
        """
        Resolve tokens in a template, upload it and validate it.

        Args:
            template_path: Template containing the tokens
            key: Destination S3 key of the resolved template
            substitutions: Mapping of token to replacement value
            staging_dir: Directory that receives the resolved copy

        Returns:
            The https URL of the uploaded template

        Raises:
            ValidationError: If a token is left unresolved or the template is rejected
        """
        template_path = Path(template_path)
        try:
            template_text = template_path.read_text()
        except OSError as e:
            raise FileSystemError(
                f"Unable to read template {template_path}: {e}", step="finalize"
            ) from e

        self.console.print(f"[cyan]Inline edit {template_path.name} to replace:[/cyan]")
        for token, value in substitutions.items():
            self.console.print(f"   [yellow]{token}[/yellow] with: [green]{value}[/green]")
        resolved = finalize(template_text, substitutions)

        unresolved = find_unresolved_tokens(resolved)
        if unresolved:
            raise ValidationError(
                f"Unresolved tokens in {template_path.name}: {', '.join(unresolved)}",
                step="finalize",
            )

        staged_path = Path(staging_dir) / template_path.name
        staged_path.write_text(resolved)
        logger.debug(f"Wrote resolved template to {staged_path}")

        self.console.print(f"[cyan]Uploading {template_path.name} to S3: {key}[/cyan]")
        self.object_store.put(key, resolved.encode("utf-8"))
        return self.validate(key)
