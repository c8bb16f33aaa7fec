# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Checks for the external tools used by the package procedures.

All checks run before any package is touched.
"""

import shutil
import subprocess
import sys

from loguru import logger

from lma_publish.errors import ToolingPreconditionError

MIN_SAM_VERSION = "1.118.0"
REQUIRED_NODE_MAJOR = "18"
REQUIRED_COMMANDS = ["docker", "sam", "aws", "zip", "pip3", "npm", "node", "git"]

INSTALL_HINTS = {
    "docker": "Install: https://docs.docker.com/engine/install/",
    "sam": "Install: https://docs.aws.amazon.com/serverless-application-model/latest/developerguide/install-sam-cli.html",
}


def version_compare(version1, version2):
    """Compare two version strings. Returns -1 if v1 < v2, 0 if equal, 1 if v1 > v2"""

    def normalize(v):
        return [int(x) for x in v.split(".")]

    v1_parts = normalize(version1)
    v2_parts = normalize(version2)

    # Pad shorter version with zeros
    max_len = max(len(v1_parts), len(v2_parts))
    v1_parts.extend([0] * (max_len - len(v1_parts)))
    v2_parts.extend([0] * (max_len - len(v2_parts)))

    for i in range(max_len):
        if v1_parts[i] < v2_parts[i]:
            return -1
        elif v1_parts[i] > v2_parts[i]:
            return 1
    return 0


def _output(cmd):
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    except (subprocess.CalledProcessError, OSError) as e:
        raise ToolingPreconditionError(f"Error: could not run {' '.join(cmd)}: {e}")
    return result.stdout.strip()


def check_commands(commands=REQUIRED_COMMANDS):
    for cmd in commands:
        if not shutil.which(cmd):
            message = f"Error: {cmd} is required but not installed"
            if cmd in INSTALL_HINTS:
                message = f"{message}. {INSTALL_HINTS[cmd]}"
            raise ToolingPreconditionError(message)


def check_docker_running():
    result = subprocess.run(["docker", "ps"], capture_output=True, text=True)
    if result.returncode != 0:
        raise ToolingPreconditionError("Error: docker is not running")


def check_sam_version(min_version=MIN_SAM_VERSION):
    # "SAM CLI, version 1.118.0"
    output = _output(["sam", "--version"])
    try:
        sam_version = output.split()[3]
        too_old = version_compare(sam_version, min_version) < 0
    except (IndexError, ValueError):
        raise ToolingPreconditionError(f"Error: Could not determine SAM version from '{output}'")
    if too_old:
        raise ToolingPreconditionError(
            f"Error: sam version >= {min_version} is required. (Installed version is {sam_version}) "
            "Install: https://docs.aws.amazon.com/serverless-application-model/latest/developerguide/manage-sam-cli-versions.html"
        )
    logger.debug(f"sam version {sam_version}")


def check_virtualenv():
    result = subprocess.run(
        [sys.executable, "-c", "import virtualenv"], capture_output=True, text=True
    )
    if result.returncode != 0:
        raise ToolingPreconditionError(
            'Error: virtualenv python package is not installed and required. Run "pip3 install virtualenv"'
        )


def check_node_version(required_major=REQUIRED_NODE_MAJOR):
    node_version = _output(["node", "-v"])
    if not node_version.startswith(f"v{required_major}."):
        raise ToolingPreconditionError(
            f"Error: Node.js version {required_major}.x is required. (Installed version is {node_version})"
        )


def check_prerequisites():
    """Check for required commands and versions"""
    check_commands()
    check_docker_running()
    check_sam_version()
    check_virtualenv()
    check_node_version()
