# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Sequential, fail-fast publishing of the application's packages.

Each package goes through:

    PENDING -> CHECK_CHANGED -> SKIPPED -> DONE
    PENDING -> CHECK_CHANGED -> BUILDING -> UPLOADING -> RECORD_SUCCESS -> DONE

Any error moves the package to FAILED and aborts the run; the remaining
packages are not attempted and the failed package's publish record is left
untouched, so the next run retries it.
"""

import time
from typing import Iterable, Optional

from loguru import logger

from lma_publish.change_tracking import ChangeTrackingStore
from lma_publish.errors import BuildProcedureError, PublishError
from lma_publish.models import Package, PackageRun, PackageState, PublishReport
from lma_publish.procedures import PublishContext


class PublishOrchestrator:
    def __init__(self, store: ChangeTrackingStore, context: PublishContext):
        self.store = store
        self.context = context
        self.console = context.console
        self.report: Optional[PublishReport] = None

    def run(self, packages: Iterable[Package]) -> PublishReport:
        """
        Publish packages strictly in order.

        Returns:
            PublishReport with the state history of every attempted package

        Raises:
            PublishError: On the first package failure; ``self.report`` still
                holds the partial report
        """
        self.report = PublishReport(resolved_tokens=self.context.resolved_tokens)
        for package in packages:
            run = PackageRun(package=package.name)
            self.report.runs.append(run)
            self.publish_package(package, run)
        return self.report

    def publish_package(self, package: Package, run: PackageRun) -> PackageRun:
        procedure = package.procedure
        try:
            procedure.prepare(package, self.context)

            run.transition(PackageState.CHECK_CHANGED)
            if not self.store.has_changed(package):
                run.transition(PackageState.SKIPPED)
                self.console.print(f"[green]SKIPPING {package.name} (unchanged)[/green]")
                run.transition(PackageState.DONE)
                return run

            self.console.print(f"[bold cyan]PACKAGING {package.name}[/bold cyan]")
            start = time.time()
            run.transition(PackageState.BUILDING)
            procedure.build(package, self.context)
            build_time = time.time() - start

            run.transition(PackageState.UPLOADING)
            procedure.upload(package, self.context)
            total_time = time.time() - start

            run.transition(PackageState.RECORD_SUCCESS)
            run.signature = self.store.record_published(package)
            run.transition(PackageState.DONE)
            self.console.print(
                f"[dim]  {package.name}: build={build_time:.1f}s, total={total_time:.1f}s[/dim]"
            )
            return run
        except PublishError as e:
            self._fail(package, run, e)
            raise
        except Exception as e:
            error = BuildProcedureError(str(e) or type(e).__name__)
            self._fail(package, run, error)
            raise error from e

    def _fail(self, package: Package, run: PackageRun, error: PublishError):
        if error.package is None:
            error.package = package.name
        if error.step is None:
            # prepare runs before the change check
            if run.state == PackageState.PENDING:
                error.step = "prepare"
            else:
                error.step = run.state.value.lower()
        run.error = error.message
        run.transition(PackageState.FAILED)
        logger.error(f"Publishing {package.name} failed: {error}")
        self.console.print(f"[red]❌ {package.name} failed during {error.step}[/red]")
