# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
External process execution with standardized logging and error collection.
"""

import os
import subprocess
from typing import Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape

from lma_publish.errors import BuildProcedureError
from lma_publish.models import CommandResult


class CommandRunner:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.build_errors = []  # Track build errors for the summary

    def log_verbose(self, message, style="dim"):
        """Log verbose messages if verbose mode is enabled"""
        logger.debug(message)
        if self.verbose:
            self.console.print(f"[{style}]{escape(message)}[/{style}]")

    def log_error_details(self, component, error_output):
        """Log detailed error information and store for summary"""
        self.build_errors.append({"component": component, "error": error_output})

        if self.verbose:
            self.console.print(f"[red]❌ {component} failed:[/red]")
            self.console.print(f"[red]{escape(error_output)}[/red]")
        else:
            self.console.print(
                f"[red]❌ {component} failed (use --verbose for details)[/red]"
            )

    def run(
        self,
        cmd: List[str],
        component: str,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run a command and return its result; failures are logged, never raised"""
        cwd = str(cwd) if cwd is not None else None
        self.log_verbose(f"Running in {cwd or os.getcwd()}: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd, capture_output=True, text=True, cwd=cwd, env=env
            )
            result = CommandResult(
                cmd=list(cmd),
                returncode=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                cwd=cwd,
            )
        except OSError as e:
            # Executable missing or cwd unusable
            result = CommandResult(cmd=list(cmd), returncode=127, stderr=str(e), cwd=cwd)

        if not result.success:
            self.log_error_details(component, result.describe())
        return result

    def check(
        self,
        cmd: List[str],
        component: str,
        package: Optional[str] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run a command and raise BuildProcedureError if it fails"""
        result = self.run(cmd, component, cwd=cwd, env=env)
        if not result.success:
            raise BuildProcedureError(
                f"{' '.join(cmd)} exited with code {result.returncode}",
                package=package,
                step=component,
                details=result.describe(),
            )
        return result

    def print_error_summary(self):
        """Print summary of all build errors"""
        if not self.build_errors:
            return

        self.console.print("\n[red]❌ Build Error Summary:[/red]")
        for i, error_info in enumerate(self.build_errors, 1):
            self.console.print(f"\n[red]{i}. {error_info['component']}:[/red]")
            if self.verbose:
                self.console.print(f"[red]{escape(error_info['error'])}[/red]")
            else:
                error_lines = error_info["error"].strip().split("\n")
                for line in error_lines[:3]:
                    self.console.print(f"[red]  {escape(line)}[/red]")
                if len(error_lines) > 3:
                    self.console.print(
                        f"[dim]  ... ({len(error_lines) - 3} more lines, use --verbose for full output)[/dim]"
                    )
