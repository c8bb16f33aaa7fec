# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import sys
from typing import Optional

import typer
from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.markup import escape

from lma_publish.config import PublishSettings
from lma_publish.errors import PublishError
from lma_publish.publisher import LMAPublisher

load_dotenv()

app = typer.Typer(add_completion=False)
console = Console()


def configure_logging(verbose: bool):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.command()
def publish(
    cfn_bucket_basename: str = typer.Argument(..., help="Base name for the CloudFormation artifacts bucket"),
    cfn_prefix: str = typer.Argument(..., help="S3 prefix for artifacts"),
    region: str = typer.Argument(..., help="AWS region for deployment"),
    visibility: Optional[str] = typer.Argument(
        None, help="If 'public', artifacts will be made publicly readable"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output for debugging"),
    staging_dir: Optional[str] = typer.Option(
        None, "--staging-dir", help="Scratch directory for staged artifacts (default: /tmp/lma)"
    ),
    project_root: str = typer.Option(
        ".", "--project-root", help="Directory containing VERSION, lma-main.yaml and the stacks"
    ),
):
    """
    Build and publish LMA artifacts to S3 for deployment with CloudFormation
    """
    configure_logging(verbose)

    public = False
    if visibility is not None:
        if visibility.lower() == "public":
            public = True
        else:
            console.print(f"[yellow]Warning: Unknown argument '{visibility}' ignored[/yellow]")

    publisher = None
    try:
        settings = PublishSettings.from_args(
            cfn_bucket_basename,
            cfn_prefix,
            region,
            public=public,
            project_root=project_root,
            staging_dir=staging_dir,
        )
        publisher = LMAPublisher(settings, console=console, verbose=verbose)
        publisher.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(code=1)
    except (PublishError, ValueError) as e:
        logger.debug(f"Publish failed: {e!r}")
        if publisher is not None:
            publisher.runner.print_error_summary()
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if not verbose:
            console.print("[dim]Use --verbose flag for detailed error information[/dim]")
        raise typer.Exit(code=1)


def main():
    app()
