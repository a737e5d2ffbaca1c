"""Exception types raised at the configuration and discovery edges."""

from __future__ import annotations


class FunctionAppInventoryError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(FunctionAppInventoryError):
    """Configuration is missing or invalid."""


class DiscoveryError(FunctionAppInventoryError):
    """A subscription or graph query could not be enumerated."""

    def __init__(self, message: str, subscription_id: str = "") -> None:
        super().__init__(message)
        self.subscription_id = subscription_id
