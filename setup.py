#!/usr/bin/env python

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from setuptools import find_packages, setup

# Core dependencies required for all installations
install_requires = [
    "boto3>=1.38.36",  # S3 artifacts and CloudFormation template validation
    "rich>=13.7.0",  # Console output and progress display
    "typer>=0.12.0",  # Command line interface
    "loguru>=0.7.2",  # Diagnostic logging
    "python-dotenv>=1.1.0,<2.0.0",  # .env configuration
]

extras_require = {
    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
    ],
}

setup(
    name="lma_publish",
    version="0.1.0",
    packages=find_packages(include=["lma_publish", "lma_publish.*"]),
    py_modules=["publish"],
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "lma-publish=lma_publish.cli:main",
        ],
    },
)
