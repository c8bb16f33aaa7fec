# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Create the Cfn artifacts bucket if not already existing
Build artifacts
Upload artifacts to S3 bucket for deployment with CloudFormation
"""

import shutil
from typing import Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from lma_publish.change_tracking import ChangeTrackingStore
from lma_publish.commands import CommandRunner
from lma_publish.config import PublishSettings
from lma_publish.errors import FileSystemError
from lma_publish.models import Package, PublishReport
from lma_publish.orchestrator import PublishOrchestrator
from lma_publish.outputs import PublishOutputs, build_outputs, print_outputs
from lma_publish.packages import get_packages
from lma_publish.preflight import check_prerequisites
from lma_publish.procedures import PublishContext
from lma_publish.s3 import S3ObjectStore
from lma_publish.template import (
    ARTIFACT_BUCKET_TOKEN,
    ARTIFACT_PREFIX_TOKEN,
    REGION_TOKEN,
    VERSION_TOKEN,
    CloudFormationValidator,
    TemplateFinalizer,
)


class LMAPublisher:
    def __init__(
        self,
        settings: PublishSettings,
        console: Optional[Console] = None,
        verbose: bool = False,
        packages: Optional[List[Package]] = None,
        s3_client=None,
        cf_client=None,
        runner: Optional[CommandRunner] = None,
    ):
        self.settings = settings
        self.console = console or Console()
        self.verbose = verbose
        self.packages = packages if packages is not None else get_packages(settings.project_root)

        self.runner = runner or CommandRunner(self.console, verbose)
        self.object_store = S3ObjectStore(settings.bucket, settings.region, s3_client)
        self.finalizer = TemplateFinalizer(
            self.object_store,
            CloudFormationValidator(settings.region, cf_client),
            self.console,
        )
        self.context = PublishContext(
            settings=settings,
            runner=self.runner,
            object_store=self.object_store,
            finalizer=self.finalizer,
            console=self.console,
        )
        self.store = ChangeTrackingStore(settings.destination)
        self.orchestrator = PublishOrchestrator(self.store, self.context)

    def setup_artifacts_bucket(self):
        """Create bucket if necessary"""
        if self.object_store.ensure_bucket():
            self.console.print(f"[yellow]Created s3 bucket: {self.settings.bucket}[/yellow]")
        else:
            self.console.print(f"[green]Using existing bucket: {self.settings.bucket}[/green]")

    def prepare_staging_dir(self):
        staging_dir = self.settings.staging_dir
        self.console.print(f"[cyan]Make temp dir: {staging_dir}[/cyan]")
        try:
            shutil.rmtree(staging_dir, ignore_errors=True)
            staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                f"Unable to create staging directory {staging_dir}: {e}", step="staging"
            ) from e

    def main_template_substitutions(self, report: PublishReport) -> Dict[str, str]:
        substitutions = {
            ARTIFACT_BUCKET_TOKEN: self.settings.bucket,
            ARTIFACT_PREFIX_TOKEN: self.settings.prefix_and_version,
            VERSION_TOKEN: self.settings.version,
            REGION_TOKEN: self.settings.region,
        }
        substitutions.update(report.resolved_tokens)
        return substitutions

    def publish_main_template(self, report: PublishReport) -> str:
        self.console.print("[bold cyan]PACKAGING Main Stack Cfn artifacts[/bold cyan]")
        return self.finalizer.publish(
            self.settings.project_root / self.settings.main_template,
            self.settings.main_template_key,
            self.main_template_substitutions(report),
            self.settings.staging_dir,
        )

    def set_public_acls(self):
        """Set public read ACLs on all uploaded artifacts if public option is enabled"""
        if not self.settings.public:
            return

        self.console.print("[cyan]Setting public read ACLs on published artifacts...[/cyan]")
        keys = self.object_store.list(self.settings.prefix_and_version)
        if not keys:
            self.console.print("[yellow]No objects found to set ACLs on[/yellow]")
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.console,
                transient=False,
            ) as progress:
                task = progress.add_task("[cyan]Setting ACLs...", total=len(keys))
                for key in keys:
                    self.object_store.set_public_read(key)
                    progress.advance(task)

        self.object_store.set_public_read(self.settings.main_template_key)
        self.console.print("[green]✅ Public ACLs set successfully[/green]")

    def run(self, skip_prerequisites: bool = False) -> PublishOutputs:
        """Main execution method"""
        if not skip_prerequisites:
            check_prerequisites()

        if self.settings.public:
            self.console.print("[green]Published S3 artifacts will be accessible by public.[/green]")
        else:
            self.console.print("[yellow]Published S3 artifacts will NOT be accessible by public.[/yellow]")

        self.setup_artifacts_bucket()
        self.prepare_staging_dir()

        report = self.orchestrator.run(self.packages)
        logger.info(
            f"Published: {', '.join(report.published) or 'none'}; "
            f"skipped: {', '.join(report.skipped) or 'none'}"
        )

        self.publish_main_template(report)
        self.set_public_acls()

        outputs = build_outputs(self.settings)
        print_outputs(self.console, self.settings, outputs)
        self.console.print("\n[bold green]✅ Done![/bold green]")
        return outputs
