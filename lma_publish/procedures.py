# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Build and upload procedures for the packages of the LMA application.

A procedure has three hooks, called by the orchestrator:

prepare
    Always runs, even when the package is unchanged. Used for work whose
    output other steps depend on, such as resolving an artifact location for
    the main template.
build
    Runs only for changed packages. Builds and stages artifacts.
upload
    Runs after a successful build. Uploads and validates artifacts.

Failures are raised as PublishError subclasses; a procedure never reports
failure through a return value.
"""

import json
import os
import re
import shutil
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from loguru import logger
from rich.console import Console

from lma_publish.checksum import RECORD_FILE_NAME, content_hash, list_files
from lma_publish.commands import CommandRunner
from lma_publish.config import PublishSettings
from lma_publish.errors import FileSystemError
from lma_publish.models import DestinationCoordinates, Package
from lma_publish.s3 import S3ObjectStore
from lma_publish.template import (
    BROWSER_EXTENSION_SRC_S3_LOCATION_TOKEN,
    TemplateFinalizer,
)


@dataclass
class PublishContext:
    """Collaborators and shared state handed to every procedure."""

    settings: PublishSettings
    runner: CommandRunner
    object_store: S3ObjectStore
    finalizer: TemplateFinalizer
    console: Console = field(default_factory=Console)
    # Values resolved by procedures and substituted into the main template
    resolved_tokens: Dict[str, str] = field(default_factory=dict)
    # Per-package artifact names computed during prepare
    artifacts: Dict[str, str] = field(default_factory=dict)
    submodules_initialized: bool = False

    @property
    def destination(self) -> DestinationCoordinates:
        return self.settings.destination

    @property
    def staging_dir(self) -> Path:
        return self.settings.staging_dir

    @property
    def env(self) -> dict:
        return self.settings.child_environment()


def make_executable(script: Path, package: Optional[str] = None):
    try:
        mode = os.stat(script).st_mode
        os.chmod(script, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        raise FileSystemError(
            f"Build script not usable: {script}: {e}", package=package, step="build"
        ) from e


def update_submodules(context: PublishContext):
    """Initialize and update git submodules once per run."""
    if context.submodules_initialized:
        return
    context.console.print("[cyan]Initialize and update git submodules[/cyan]")
    root = context.settings.project_root
    context.runner.check(["git", "submodule", "init"], "git submodule init", cwd=root)
    context.runner.check(["git", "submodule", "update"], "git submodule update", cwd=root)
    context.submodules_initialized = True


class PackageProcedure:
    """Base procedure; subclasses implement build and optionally prepare/upload."""

    # Packages living in git submodules need them checked out before the change check
    init_submodules = False

    def prepare(self, package: Package, context: PublishContext):
        if self.init_submodules:
            update_submodules(context)

    def build(self, package: Package, context: PublishContext):
        raise NotImplementedError

    def upload(self, package: Package, context: PublishContext):
        """Most packages upload as part of their build script."""


class BrowserExtensionProcedure(PackageProcedure):
    """
    Zips the browser extension under a content-addressed name.

    The zip name embeds the content hash of the extension folder, so the
    CodeBuild custom resource in the extension stack re-runs only when the
    extension source actually changes. The resolved location is needed by the
    main template even when the package is skipped, so it is computed in
    prepare.
    """

    excluded_dirs = ("node_modules", "build")
    template_name = "template.yaml"

    def prepare(self, package: Package, context: PublishContext):
        super().prepare(package, context)
        context.console.print("[cyan]Computing hash of extension folder contents[/cyan]")
        zipfile_name = f"src-{content_hash(package.path, self.excluded_dirs)}.zip"
        context.artifacts[package.name] = zipfile_name
        context.resolved_tokens[BROWSER_EXTENSION_SRC_S3_LOCATION_TOKEN] = (
            context.destination.s3_location(package.name, zipfile_name)
        )

    def build(self, package: Package, context: PublishContext):
        zipfile_path = context.staging_dir / context.artifacts[package.name]
        context.console.print(f"[cyan]Zipping source to {zipfile_path}[/cyan]")
        # Same file set as the content hash in the zip name
        files = list_files(package.path, self.excluded_dirs, (RECORD_FILE_NAME,))
        try:
            with zipfile.ZipFile(zipfile_path, "w", zipfile.ZIP_DEFLATED) as zipf:
                for relative_path, file_path in sorted(files):
                    zipf.write(file_path, relative_path)
        except OSError as e:
            raise FileSystemError(
                f"Unable to zip {package.path}: {e}", package=package.name, step="build"
            ) from e

    def upload(self, package: Package, context: PublishContext):
        zipfile_name = context.artifacts[package.name]
        prefix = f"{context.destination.prefix_and_version}/{package.name}"
        context.console.print("[cyan]Upload source and template to S3[/cyan]")
        context.object_store.upload_file(
            str(context.staging_dir / zipfile_name), f"{prefix}/{zipfile_name}"
        )
        template_key = f"{prefix}/{self.template_name}"
        context.object_store.upload_file(
            str(package.path / self.template_name), template_key
        )
        context.finalizer.validate(template_key, package=package.name)


class PublishScriptProcedure(PackageProcedure):
    """Runs the package's own ./publish.sh <bucket> <prefix> [<region>]."""

    def __init__(
        self,
        script: str = "./publish.sh",
        prefix_suffix: str = "",
        pass_region: bool = True,
        init_submodules: bool = False,
    ):
        self.script = script
        self.prefix_suffix = prefix_suffix
        self.pass_region = pass_region
        self.init_submodules = init_submodules

    def build(self, package: Package, context: PublishContext):
        make_executable(package.path / self.script, package.name)
        destination = context.destination
        cmd = [
            self.script,
            destination.bucket,
            destination.prefix_and_version + self.prefix_suffix,
        ]
        if self.pass_region:
            cmd.append(destination.region)
        context.runner.check(
            cmd, f"{package.name} publish", package=package.name, cwd=package.path, env=context.env
        )


class DistBuildProcedure(PackageProcedure):
    """Runs deployment/build-s3-dist.sh after clearing the previous ../out."""

    def __init__(
        self,
        script: str = "./build-s3-dist.sh",
        deployment_dir: str = "deployment",
        output_dir: str = "out",
    ):
        self.script = script
        self.deployment_dir = deployment_dir
        self.output_dir = output_dir

    def build(self, package: Package, context: PublishContext):
        settings = context.settings
        shutil.rmtree(package.path / self.output_dir, ignore_errors=True)
        deployment = package.path / self.deployment_dir
        make_executable(deployment / self.script, package.name)
        cmd = [
            self.script,
            settings.bucket_basename,
            f"{settings.prefix_and_version}/{package.name}",
            settings.version,
            settings.region,
        ]
        context.runner.check(
            cmd, f"{package.name} build-s3-dist", package=package.name, cwd=deployment, env=context.env
        )


class SourceHashTemplateProcedure(PackageProcedure):
    """
    Packages a template whose custom resource must re-run when its source changes.

    The content hash of the source folder is written into the template's
    ``source_hash`` property before ``aws cloudformation package`` runs.
    """

    SOURCE_HASH_PATTERN = re.compile(r"source_hash: .*")

    def __init__(
        self,
        template: str = "llm-template-setup.yaml",
        deployment_dir: str = "deployment",
        source_dir: str = "source",
    ):
        self.template = template
        self.deployment_dir = deployment_dir
        self.source_dir = source_dir

    def write_source_hash(self, template_path: Path, source_hash: str, package: str):
        try:
            text = template_path.read_text()
            template_path.write_text(
                self.SOURCE_HASH_PATTERN.sub(f"source_hash: {source_hash}", text)
            )
        except OSError as e:
            raise FileSystemError(
                f"Unable to update {template_path}: {e}", package=package, step="build"
            ) from e

    def build(self, package: Package, context: PublishContext):
        settings = context.settings
        deployment = package.path / self.deployment_dir
        context.console.print("[cyan]Computing hash of src folder contents[/cyan]")
        source_hash = content_hash(package.path / self.source_dir)
        logger.debug(f"{package.name} source hash: {source_hash}")
        self.write_source_hash(deployment / self.template, source_hash, package.name)

        cmd = [
            "aws",
            "cloudformation",
            "package",
            "--template-file",
            self.template,
            "--output-template-file",
            str(context.staging_dir / self.template),
            "--s3-bucket",
            settings.bucket,
            "--s3-prefix",
            f"{settings.prefix_and_version}/{package.name}",
            "--region",
            settings.region,
        ]
        context.runner.check(
            cmd, f"{package.name} cloudformation package", package=package.name, cwd=deployment, env=context.env
        )

    def upload(self, package: Package, context: PublishContext):
        key = f"{context.destination.prefix_and_version}/{package.name}/{self.template}"
        context.console.print(f"[cyan]Uploading template file to: s3://{context.destination.bucket}/{key}[/cyan]")
        context.object_store.upload_file(str(context.staging_dir / self.template), key)


class QnABotProcedure(PackageProcedure):
    """Patches and builds the QnABot submodule, then syncs its build output."""

    init_submodules = True

    # patch file under patches/qnabot -> destination inside the submodule
    PATCHES = {
        "Makefile": "Makefile",
        "templates_examples_examples_index.js": "templates/examples/examples/index.js",
        "templates_examples_extensions_index.js": "templates/examples/extensions/index.js",
    }
    VERSION_PATTERN = re.compile(r'"version": *"([0-9]*\.[0-9]*\.[0-9]*)"')

    def __init__(
        self,
        patches_dir: str = "patches/qnabot",
        s3_folder: str = "aws-qnabot",
        version_suffix: str = "-lma",
        stale_dirs: Iterable[str] = ("ml_model/llm-qa-summarize",),
    ):
        self.patches_dir = patches_dir
        self.s3_folder = s3_folder
        self.version_suffix = version_suffix
        self.stale_dirs = tuple(stale_dirs)

    def apply_patches(self, package: Package, context: PublishContext):
        context.console.print(
            "[cyan]Applying patch files to simplify UX by removing some QnABot options not needed for lma[/cyan]"
        )
        patches = context.settings.project_root / self.patches_dir
        for source, target in self.PATCHES.items():
            try:
                destination = package.path / target
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(patches / source, destination)
            except OSError as e:
                raise FileSystemError(
                    f"Unable to apply patch {source}: {e}", package=package.name, step="patch"
                ) from e
            logger.debug(f"Copied {patches / source} -> {destination}")

    def suffix_version(self, package_json: Path):
        text = package_json.read_text()
        package_json.write_text(
            self.VERSION_PATTERN.sub(
                lambda m: f'"version": "{m.group(1)}{self.version_suffix}"', text
            )
        )

    def write_build_config(self, package: Package, context: PublishContext):
        config = {
            "profile": os.environ.get("AWS_PROFILE", "default"),
            "region": context.settings.region,
            "buildType": "Custom",
            "skipCheckTemplate": True,
            "noStackOutput": True,
        }
        (package.path / "config.json").write_text(json.dumps(config, indent=2) + "\n")

    def build(self, package: Package, context: PublishContext):
        self.apply_patches(package, context)
        try:
            self.suffix_version(package.path / "package.json")
            for stale in self.stale_dirs:
                shutil.rmtree(package.path / stale, ignore_errors=True)
            (package.path / "build" / "templates" / "dev").mkdir(parents=True, exist_ok=True)
            self.write_build_config(package, context)
        except OSError as e:
            raise FileSystemError(
                f"Unable to prepare QnABot build: {e}", package=package.name, step="build"
            ) from e

        context.runner.check(
            ["npm", "install"], f"{package.name} npm install", package=package.name, cwd=package.path, env=context.env
        )
        context.runner.check(
            ["npm", "run", "build"], f"{package.name} npm run build", package=package.name, cwd=package.path, env=context.env
        )

    def upload(self, package: Package, context: PublishContext):
        destination = context.destination
        target = f"s3://{destination.bucket}/{destination.prefix_and_version}/{self.s3_folder}/"
        context.runner.check(
            ["aws", "s3", "sync", "./build/", target, "--delete"],
            f"{package.name} s3 sync",
            package=package.name,
            cwd=package.path,
            env=context.env,
        )
