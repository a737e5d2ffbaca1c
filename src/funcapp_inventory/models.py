"""Data models representing discovered Function Apps and their classification."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


NOT_AVAILABLE = "N/A"
NOT_APPLICABLE = "not applicable"


class RuntimeStack(str, Enum):
    DOTNET = "dotnet"
    DOTNET_ISOLATED = "dotnet-isolated"
    PYTHON = "python"
    NODE = "node"
    JAVA = "java"
    POWERSHELL = "powershell"
    UNKNOWN = "unknown"

    @property
    def is_dotnet(self) -> bool:
        return self in (RuntimeStack.DOTNET, RuntimeStack.DOTNET_ISOLATED)

    @classmethod
    def from_worker_runtime(cls, value: str) -> "RuntimeStack":
        """Map a FUNCTIONS_WORKER_RUNTIME value onto a stack (unknown if unrecognised)."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class HostingModel(str, Enum):
    IN_PROCESS = "in-process"
    ISOLATED = "isolated"
    NOT_APPLICABLE = "not-applicable"

    @classmethod
    def for_stack(cls, stack: RuntimeStack) -> "HostingModel":
        if stack == RuntimeStack.DOTNET_ISOLATED:
            return cls.ISOLATED
        if stack == RuntimeStack.DOTNET:
            return cls.IN_PROCESS
        return cls.NOT_APPLICABLE


@dataclass(frozen=True)
class KindTags:
    """Flags parsed from the free-text ``kind`` string (e.g. "functionapp,linux")."""
    is_function_app: bool = False
    is_linux: bool = False
    in_process_marker: bool = False


@dataclass(frozen=True)
class LinuxFxVersion:
    """A parsed ``RUNTIME|VERSION`` string.

    ``stack_hint`` is the stack suggested by the whole raw value, even when it
    is not in pipe format (e.g. a container image reference).  ``runtime_token``
    and ``version`` are only set when the pipe format matched.
    """
    raw: str
    stack_hint: RuntimeStack = RuntimeStack.UNKNOWN
    runtime_token: str = ""
    version: str = ""

    def version_for(self, *tokens: str) -> str | None:
        """Return the version when the runtime token is one of ``tokens``."""
        if self.version and self.runtime_token in tokens:
            return self.version
        return None


@dataclass(frozen=True)
class FunctionAppRecord:
    """A single Function App as returned by discovery. Immutable."""
    # Identity
    subscription_id: str = ""
    resource_group: str = ""
    name: str = ""
    location: str = ""

    # Platform
    kind: str = ""
    kind_tags: KindTags = field(default_factory=KindTags)

    # Site configuration
    net_framework_version: str | None = None
    linux_fx_version: str | None = None
    linux_fx: LinuxFxVersion | None = None

    # App settings (read-only view)
    app_settings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def setting(self, key: str) -> str | None:
        """Return a stripped app setting, or None when absent or blank."""
        value = self.app_settings.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


@dataclass(frozen=True)
class BundleEstimate:
    """Best-effort extension bundle guess. Never ground truth."""
    bundle_id: str
    version_range: str
    estimated: bool = True
    basis: str = ""

    def as_pair(self) -> tuple[str, str]:
        return self.bundle_id, self.version_range


@dataclass(frozen=True)
class ClassificationResult:
    """Per-app output row handed to reporting/export."""
    subscription_id: str
    resource_group: str
    name: str
    location: str
    runtime_stack: RuntimeStack
    runtime_version_display: str
    hosting_model: HostingModel
    extension_bundle: BundleEstimate

    # Pass-through diagnostics
    kind: str = ""
    worker_runtime: str | None = None
    net_framework_version: str | None = None
    linux_fx_version: str | None = None
    functions_extension_version: str | None = None

    @property
    def version_detected(self) -> bool:
        return self.runtime_version_display != NOT_AVAILABLE

    def to_dict(self) -> dict:
        d = asdict(self)
        d["runtime_stack"] = self.runtime_stack.value
        d["hosting_model"] = self.hosting_model.value
        return d


@dataclass
class ScanSummary:
    """Aggregate statistics over a scan."""
    total: int = 0
    by_runtime: dict[str, int] = field(default_factory=dict)
    by_extension_version: dict[str, int] = field(default_factory=dict)
    versions_detected: int = 0
    detection_success_rate: float = 0.0
