#!/usr/bin/env python3

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Create new Cfn artifacts bucket if not already existing
Build artifacts
Upload artifacts to S3 bucket for deployment with CloudFormation

Usage:
  python3 publish.py <cfn_bucket_basename> <cfn_prefix> <region> [public] [--verbose]
"""

from lma_publish.cli import main

if __name__ == "__main__":
    main()
