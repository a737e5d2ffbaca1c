"""Configuration management - loads settings from .env and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

STRATEGIES = ("auto", "graph", "resource-group")


def _load_dotenv(path: Path | None = None) -> None:
    """Minimal .env loader; existing environment variables win."""
    candidates = [
        path,
        Path.cwd() / ".env",
        Path(__file__).resolve().parents[2] / ".env",
    ]
    env_path = None
    for candidate in candidates:
        if candidate and candidate.exists():
            env_path = candidate
            break
    if env_path is None:
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if key and key not in os.environ:
            os.environ[key] = value


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value


@dataclass
class AzureConfig:
    subscription_ids: list[str] = field(default_factory=list)
    resource_groups: list[str] = field(default_factory=list)


@dataclass
class DiscoveryConfig:
    strategy: str = "auto"
    max_workers: int = 4
    max_retries: int = 3


@dataclass
class AppConfig:
    azure: AzureConfig = field(default_factory=AzureConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)


def load_config(dotenv_path: Path | None = None) -> AppConfig:
    """Load configuration from environment / .env file."""
    _load_dotenv(dotenv_path)

    subscriptions = _split_list(os.getenv("AZURE_SUBSCRIPTION_IDS", ""))
    if not subscriptions:
        subscriptions = _split_list(os.getenv("AZURE_SUBSCRIPTION_ID", ""))

    azure = AzureConfig(
        subscription_ids=subscriptions,
        resource_groups=_split_list(os.getenv("FUNCAPP_RESOURCE_GROUPS", "")),
    )

    strategy = os.getenv("FUNCAPP_DISCOVERY_STRATEGY", "auto").strip().lower() or "auto"
    if strategy not in STRATEGIES:
        raise ConfigError(
            f"FUNCAPP_DISCOVERY_STRATEGY must be one of {', '.join(STRATEGIES)}, got {strategy!r}"
        )

    discovery = DiscoveryConfig(
        strategy=strategy,
        max_workers=_int_env("FUNCAPP_MAX_WORKERS", 4),
        max_retries=_int_env("FUNCAPP_MAX_RETRIES", 3),
    )

    return AppConfig(azure=azure, discovery=discovery)
