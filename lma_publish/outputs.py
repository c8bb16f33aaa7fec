# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from dataclasses import dataclass
from urllib.parse import quote

from rich.console import Console

from lma_publish.config import PublishSettings


@dataclass
class PublishOutputs:
    template_url: str
    launch_url: str
    deploy_command: str


def build_outputs(settings: PublishSettings) -> PublishOutputs:
    region = settings.region
    template_url = settings.destination.https_url(settings.main_template_key)

    # URL encode the template URL for use in the CloudFormation console URL
    encoded_template_url = quote(template_url, safe=":/?#[]@!$&'()*+,;=")
    launch_url = (
        f"https://{region}.console.aws.amazon.com/cloudformation/home?region={region}"
        f"#/stacks/create/review?templateURL={encoded_template_url}&stackName={settings.stack_name}"
    )
    deploy_command = (
        f"aws cloudformation deploy --region {region} "
        f"--template-file {settings.staging_dir / settings.main_template} "
        "--capabilities CAPABILITY_NAMED_IAM CAPABILITY_AUTO_EXPAND "
        f"--stack-name {settings.stack_name} "
        "--parameter-overrides S3BucketName=\"\" AdminEmail='jdoe@example.com' "
        "BedrockKnowledgeBaseId='xxxxxxxxxx'"
    )
    return PublishOutputs(
        template_url=template_url, launch_url=launch_url, deploy_command=deploy_command
    )


def print_outputs(console: Console, settings: PublishSettings, outputs: PublishOutputs):
    """Print final outputs using Rich formatting"""
    console.print("\n[bold cyan]Deployment Information:[/bold cyan]")
    console.print(f"  • Region: [yellow]{settings.region}[/yellow]")
    console.print(f"  • Bucket: [yellow]{settings.bucket}[/yellow]")
    console.print(f"  • Template Path: [yellow]{settings.main_template_key}[/yellow]")
    console.print(f"  • Public Access: [yellow]{'Yes' if settings.public else 'No'}[/yellow]")

    console.print("\n[bold green]OUTPUTS[/bold green]")
    console.print("\n[cyan]Template URL (for updating existing stack):[/cyan]")
    console.print(f"  [link={outputs.template_url}]{outputs.template_url}[/link]")
    console.print("\n[cyan]1-Click Launch (creates new stack):[/cyan]")
    console.print(f"  [link={outputs.launch_url}]{outputs.launch_url}[/link]")
    console.print("\n[cyan]CLI Deploy:[/cyan]")
    console.print(f"  {outputs.deploy_command}", markup=False, highlight=False)
