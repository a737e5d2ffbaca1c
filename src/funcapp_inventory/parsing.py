"""Input boundary: turn raw resource data into strict ``FunctionAppRecord`` values.

Azure reports runtime identity through free-text ``kind`` tags and
pipe-delimited ``linuxFxVersion`` strings.  All substring and regex matching
on those values happens here so the classifier and resolver only ever see
parsed types.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .models import FunctionAppRecord, KindTags, LinuxFxVersion, RuntimeStack

# Order matters: first substring hit wins.
_LINUX_FX_STACK_ORDER: tuple[tuple[str, RuntimeStack], ...] = (
    ("python", RuntimeStack.PYTHON),
    ("node", RuntimeStack.NODE),
    ("dotnet", RuntimeStack.DOTNET_ISOLATED),   # .NET on Linux is always isolated
    ("java", RuntimeStack.JAVA),
    ("powershell", RuntimeStack.POWERSHELL),
)

_LINUX_FX_RE = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*\|\s*(.+?)\s*$")

_IN_PROCESS_KIND_TAGS = {"inprocess", "in-process"}


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_kind(kind: str | None) -> KindTags:
    """Parse the comma-separated ``kind`` string into flags."""
    lowered = (kind or "").lower()
    tokens = {t.strip() for t in lowered.split(",") if t.strip()}
    return KindTags(
        is_function_app="functionapp" in lowered,
        is_linux="linux" in lowered,
        in_process_marker=bool(tokens & _IN_PROCESS_KIND_TAGS),
    )


def parse_linux_fx_version(value: str | None) -> LinuxFxVersion | None:
    """Parse ``RUNTIME|VERSION``.  Returns None for an absent/blank value.

    A value that is not in pipe format still yields a ``LinuxFxVersion`` with
    a stack hint but no version, so it is skipped as a version source.
    """
    raw = _clean(value)
    if raw is None:
        return None

    lowered = raw.lower()
    stack_hint = RuntimeStack.UNKNOWN
    for needle, stack in _LINUX_FX_STACK_ORDER:
        if needle in lowered:
            stack_hint = stack
            break

    m = _LINUX_FX_RE.match(raw)
    if not m:
        return LinuxFxVersion(raw=raw, stack_hint=stack_hint)
    return LinuxFxVersion(
        raw=raw,
        stack_hint=stack_hint,
        runtime_token=m.group(1).lower(),
        version=m.group(2),
    )


def parse_app_settings(settings: Any) -> Mapping[str, str]:
    """Normalise app settings into a read-only ``{name: value}`` mapping.

    Accepts a plain dict, or the ARM list form ``[{"name": ..., "value": ...}]``.
    Entries with a missing name are dropped; ``None`` values become "".
    """
    result: dict[str, str] = {}
    if not settings:
        return MappingProxyType(result)

    items: Iterable[tuple[Any, Any]]
    if isinstance(settings, Mapping):
        items = settings.items()
    else:
        items = ((s.get("name"), s.get("value")) for s in settings if isinstance(s, Mapping))

    for key, value in items:
        if not key:
            continue
        result[str(key)] = "" if value is None else str(value)
    return MappingProxyType(result)


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def parse_function_app(raw: Mapping[str, Any]) -> FunctionAppRecord:
    """Build a ``FunctionAppRecord`` from a raw resource dict.

    Keys are accepted in either camelCase (graph rows) or snake_case
    (SDK-model-derived dicts).
    """
    kind = _clean(_first(raw, "kind")) or ""
    linux_fx = _clean(_first(raw, "linuxFxVersion", "linux_fx_version"))
    return FunctionAppRecord(
        subscription_id=_clean(_first(raw, "subscriptionId", "subscription_id")) or "",
        resource_group=_clean(_first(raw, "resourceGroup", "resource_group")) or "",
        name=_clean(_first(raw, "name")) or "",
        location=_clean(_first(raw, "location")) or "",
        kind=kind,
        kind_tags=parse_kind(kind),
        net_framework_version=_clean(_first(raw, "netFrameworkVersion", "net_framework_version")),
        linux_fx_version=linux_fx,
        linux_fx=parse_linux_fx_version(linux_fx),
        app_settings=parse_app_settings(_first(raw, "appSettings", "app_settings")),
    )
