"""Version resolver: derive a display string for the runtime version of an app.

Each stack has its own chain of sources, tried in order.  The chain always
ends in a placeholder, so ``resolve_version`` never fails and never returns
an empty string.
"""

from __future__ import annotations

import logging
from typing import Callable

from .models import NOT_AVAILABLE, FunctionAppRecord, RuntimeStack

logger = logging.getLogger(__name__)

ISOLATED_SUFFIX = " (Isolated)"
IN_PROCESS_SUFFIX = " (In-Process)"


def _linux_fx(record: FunctionAppRecord, *tokens: str) -> str | None:
    if record.linux_fx is None:
        return None
    return record.linux_fx.version_for(*tokens)


# ---------------------------------------------------------------------------
# Per-stack chains
# ---------------------------------------------------------------------------

def _resolve_python(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    version = record.setting("PYTHON_VERSION") or _linux_fx(record, "python")
    if version:
        return version
    pythonpath = record.setting("PYTHONPATH")
    if pythonpath:
        return f"Python (PYTHONPATH: {pythonpath})"
    return "Python (version not specified)"


def _resolve_node(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    default_version = record.setting("WEBSITE_NODE_DEFAULT_VERSION")
    if default_version:
        stripped = default_version[1:] if default_version.startswith("~") else default_version
        if stripped:
            return stripped
    return (
        _linux_fx(record, "node")
        or record.setting("NODE_VERSION")
        or "Node.js (version not specified)"
    )


def _resolve_dotnet(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    isolated = stack == RuntimeStack.DOTNET_ISOLATED

    if record.net_framework_version:
        return record.net_framework_version + (ISOLATED_SUFFIX if isolated else IN_PROCESS_SUFFIX)

    dotnet_version = record.setting("DOTNET_VERSION")
    if dotnet_version:
        return dotnet_version

    fx_version = _linux_fx(record, "dotnet", "dotnet-isolated")
    if fx_version:
        return fx_version + (ISOLATED_SUFFIX if isolated else "")

    host_version = record.setting("FUNCTIONS_EXTENSION_VERSION") or ""
    if host_version.startswith("~4"):
        if isolated:
            return ".NET 6.0+ (Functions v4, Isolated)"
        return ".NET 6.0 (Functions v4, In-Process)"

    return ".NET (version not specified)"


def _resolve_java(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    return (
        record.setting("JAVA_VERSION")
        or _linux_fx(record, "java")
        or "Java (version not specified)"
    )


def _resolve_powershell(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    return (
        record.setting("POWERSHELL_VERSION")
        or _linux_fx(record, "powershell")
        or "PowerShell (version not specified)"
    )


_RESOLVERS: dict[RuntimeStack, Callable[[FunctionAppRecord, RuntimeStack], str]] = {
    RuntimeStack.PYTHON: _resolve_python,
    RuntimeStack.NODE: _resolve_node,
    RuntimeStack.DOTNET: _resolve_dotnet,
    RuntimeStack.DOTNET_ISOLATED: _resolve_dotnet,
    RuntimeStack.JAVA: _resolve_java,
    RuntimeStack.POWERSHELL: _resolve_powershell,
}


def resolve_version(record: FunctionAppRecord, stack: RuntimeStack) -> str:
    """Return the runtime version display string for ``record``.

    ``FUNCTIONS_WORKER_RUNTIME_VERSION``, when set, wins over everything else.
    Unknown stacks resolve to ``"N/A"``.
    """
    if record.setting("FUNCTIONS_WORKER_RUNTIME_VERSION"):
        return record.app_settings["FUNCTIONS_WORKER_RUNTIME_VERSION"]

    resolver = _RESOLVERS.get(stack)
    if resolver is None:
        return NOT_AVAILABLE
    version = resolver(record, stack)
    logger.debug("%s: %s version resolved to %r", record.name, stack.value, version)
    return version
