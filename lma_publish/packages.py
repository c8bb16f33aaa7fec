# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Ordered package list of the LMA application.

Order matters: the browser extension must come first so its artifact location
is resolved before anything else runs, and the QnABot plugins package checks
out the git submodules that the QnABot package builds.
"""

from pathlib import Path
from typing import List

from lma_publish.models import Package
from lma_publish.procedures import (
    BrowserExtensionProcedure,
    DistBuildProcedure,
    PublishScriptProcedure,
    QnABotProcedure,
    SourceHashTemplateProcedure,
)


def get_packages(project_root) -> List[Package]:
    root = Path(project_root)

    def package(name, procedure):
        return Package(name=name, path=root / name, procedure=procedure)

    return [
        package("lma-browser-extension-stack", BrowserExtensionProcedure()),
        package("lma-meetingassist-setup-stack", PublishScriptProcedure()),
        package("lma-bedrockkb-stack", PublishScriptProcedure()),
        package("lma-websocket-stack", DistBuildProcedure()),
        package("lma-ai-stack", DistBuildProcedure()),
        package("lma-llm-template-setup-stack", SourceHashTemplateProcedure()),
        package(
            "submodule-aws-qnabot-plugins",
            PublishScriptProcedure(
                prefix_suffix="/aws-qnabot-plugins",
                pass_region=False,
                init_submodules=True,
            ),
        ),
        package("submodule-aws-qnabot", QnABotProcedure()),
    ]
