# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

__version__ = "0.1.0"

# Cache for lazy-loaded submodules
_submodules = {}

_SUBMODULES = [
    "change_tracking",
    "checksum",
    "commands",
    "config",
    "errors",
    "models",
    "orchestrator",
    "outputs",
    "packages",
    "preflight",
    "procedures",
    "publisher",
    "s3",
    "template",
]

# Names re-exported from submodules: name -> submodule
_EXPORTS = {
    "content_hash": "checksum",
    "change_signature": "checksum",
    "ChangeTrackingStore": "change_tracking",
    "PublishOrchestrator": "orchestrator",
    "PublishSettings": "config",
    "LMAPublisher": "publisher",
    "finalize": "template",
    "DestinationCoordinates": "models",
    "Package": "models",
    "PackageState": "models",
    "PublishError": "errors",
}


def __getattr__(name):
    """Lazy load submodules only when accessed"""
    if name in _SUBMODULES:
        if name not in _submodules:
            _submodules[name] = __import__(f"lma_publish.{name}", fromlist=[name])
        return _submodules[name]

    if name in _EXPORTS:
        return getattr(__getattr__(_EXPORTS[name]), name)

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = _SUBMODULES + list(_EXPORTS)
