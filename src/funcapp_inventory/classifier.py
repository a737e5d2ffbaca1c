"""Runtime classifier: decide which language stack a Function App runs on."""

from __future__ import annotations

import logging

from .models import FunctionAppRecord, RuntimeStack

logger = logging.getLogger(__name__)

# Best-effort heuristic: these framework versions are usually isolated-worker
# apps, but nothing in the resource API guarantees it.
_ISOLATED_FRAMEWORK_PREFIXES = ("v6", "v7", "v8")

_TRUTHY = {"1", "true", "yes"}


def looks_isolated_framework(net_framework_version: str | None) -> bool:
    return bool(net_framework_version) and net_framework_version.lower().startswith(
        _ISOLATED_FRAMEWORK_PREFIXES
    )


def _has_in_process_marker(record: FunctionAppRecord) -> bool:
    if record.kind_tags.in_process_marker:
        return True
    inproc_net8 = record.setting("FUNCTIONS_INPROC_NET8_ENABLED")
    return bool(inproc_net8) and inproc_net8.lower() in _TRUTHY


def _has_isolated_evidence(record: FunctionAppRecord) -> bool:
    host_version = record.setting("FUNCTIONS_EXTENSION_VERSION") or ""
    if "isolated" in host_version.lower():
        return True
    return looks_isolated_framework(record.net_framework_version) and not _has_in_process_marker(record)


def classify(record: FunctionAppRecord) -> RuntimeStack:
    """Return the runtime stack for ``record``.

    Channels are checked in a fixed order; the first one that applies decides:

    1. the ``FUNCTIONS_WORKER_RUNTIME`` app setting,
    2. ``linuxFxVersion`` on Linux-hosted apps,
    3. ``netFrameworkVersion`` on Windows-hosted .NET apps.

    Anything else is ``RuntimeStack.UNKNOWN``.
    """
    worker_runtime = record.setting("FUNCTIONS_WORKER_RUNTIME")
    if worker_runtime:
        stack = RuntimeStack.from_worker_runtime(worker_runtime)
        if stack == RuntimeStack.DOTNET and _has_isolated_evidence(record):
            stack = RuntimeStack.DOTNET_ISOLATED
        if stack == RuntimeStack.UNKNOWN:
            logger.debug("%s: unrecognised FUNCTIONS_WORKER_RUNTIME %r", record.name, worker_runtime)
        return stack

    if record.kind_tags.is_linux and record.linux_fx is not None:
        return record.linux_fx.stack_hint

    if record.net_framework_version:
        if looks_isolated_framework(record.net_framework_version):
            return RuntimeStack.DOTNET_ISOLATED
        return RuntimeStack.DOTNET

    return RuntimeStack.UNKNOWN
