"""Function App discovery - enumerate Function Apps across subscriptions.

Two interchangeable strategies produce the same ``FunctionAppRecord`` list:

* ``ResourceGraphFetcher`` - one Azure Resource Graph query per subscription,
  then per-app app settings from the Web management API.
* ``ResourceGroupFetcher`` - walk resource groups with Resource Manager and
  list the sites in each one.

``AutoFetcher`` tries the graph first and falls back to resource groups.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, TypeVar

from azure.core.exceptions import AzureError, HttpResponseError
from azure.identity import DefaultAzureCredential
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions, ResultFormat
from azure.mgmt.web import WebSiteManagementClient

from .errors import DiscoveryError
from .models import FunctionAppRecord
from .parsing import parse_function_app, parse_kind

logger = logging.getLogger(__name__)

T = TypeVar("T")

_THROTTLE_STATUS = {429}
_TRANSIENT_STATUS = {500, 502, 503, 504}
_THROTTLE_MARKERS = ("TooManyRequests", "RateLimiting", "Throttled")


@dataclass
class ScanScope:
    """Which subscriptions (and optionally resource groups) to scan."""
    subscription_ids: list[str] = field(default_factory=list)
    resource_groups: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Repeated ids would be scanned, and reported, twice.
        self.subscription_ids = list(dict.fromkeys(self.subscription_ids))
        self.resource_groups = list(dict.fromkeys(self.resource_groups))


def _is_retryable(exc: HttpResponseError) -> bool:
    if getattr(exc, "status_code", None) in _THROTTLE_STATUS | _TRANSIENT_STATUS:
        return True
    message = str(exc)
    return any(marker in message for marker in _THROTTLE_MARKERS)


def _site_config_value(config: Any, attr: str) -> str | None:
    value = getattr(config, attr, None) if config is not None else None
    return value or None


# ---------------------------------------------------------------------------
# Base fetcher
# ---------------------------------------------------------------------------

class FunctionAppFetcher(ABC):
    """Shared plumbing: credentials, Web client, retries and failure log.

    SDK clients are built with ``retry_total=0`` so that ``_call`` is the only
    retry layer and ``max_retries`` bounds the total attempts per request.
    """

    name = "base"

    def __init__(
        self,
        credential: Any | None = None,
        *,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
    ) -> None:
        self.credential = credential or DefaultAzureCredential()
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.failed_operations: list[str] = []
        self._lock = threading.Lock()

    # -- hooks ----------------------------------------------------------------

    @abstractmethod
    def fetch_subscription(
        self, subscription_id: str, resource_groups: list[str] | None = None
    ) -> list[FunctionAppRecord]:
        """Return the Function Apps of one subscription."""

    # -- helpers --------------------------------------------------------------

    def log_failure(self, message: str) -> None:
        """Record a non-fatal failure so the scan can continue."""
        with self._lock:
            self.failed_operations.append(message)
        logger.warning(message)

    def _web_client(self, subscription_id: str) -> WebSiteManagementClient:
        return WebSiteManagementClient(self.credential, subscription_id, retry_total=0)

    def _call(self, description: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``func``, retrying throttled or transient failures with exponential backoff."""
        delay = self.initial_delay
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except HttpResponseError as exc:
                attempt += 1
                if not _is_retryable(exc) or attempt > self.max_retries:
                    raise
                logger.info(
                    "%s failed with a retryable error (attempt %d/%d); retrying in %.1fs",
                    description, attempt, self.max_retries + 1, delay,
                )
                time.sleep(delay)
                delay *= self.backoff_factor

    def _app_settings(self, web: WebSiteManagementClient, resource_group: str, name: str) -> dict[str, str]:
        settings = self._call(
            f"app settings for {name}",
            web.web_apps.list_application_settings, resource_group, name,
        )
        return dict(getattr(settings, "properties", None) or {})

    def _site_config(self, web: WebSiteManagementClient, resource_group: str, name: str) -> Any:
        return self._call(
            f"site config for {name}",
            web.web_apps.get_configuration, resource_group, name,
        )


# ---------------------------------------------------------------------------
# Resource Graph strategy
# ---------------------------------------------------------------------------

_GRAPH_QUERY = """resources
| where type =~ 'microsoft.web/sites'
| where kind contains 'functionapp'{rg_filter}
| project name, resourceGroup, subscriptionId, location, kind,
    siteConfig = properties.siteConfig,
    siteProperties = properties.siteProperties.properties
| order by name asc"""


def _kql_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def build_graph_query(resource_groups: list[str] | None = None) -> str:
    """Build the KQL query listing Function Apps, optionally filtered by resource group."""
    rg_filter = ""
    if resource_groups:
        names = ", ".join(_kql_string(rg) for rg in resource_groups)
        rg_filter = f"\n| where resourceGroup in~ ({names})"
    return _GRAPH_QUERY.format(rg_filter=rg_filter)


def _graph_site_value(row: Mapping[str, Any], config_key: str, property_name: str) -> str | None:
    """Pick a site setting from a graph row.

    ``properties.siteConfig`` is often null in the graph; the same values also
    appear in ``siteProperties.properties`` as ``{name, value}`` pairs.
    """
    site_config = row.get("siteConfig") or {}
    if isinstance(site_config, Mapping) and site_config.get(config_key):
        return site_config[config_key]
    for prop in row.get("siteProperties") or []:
        if isinstance(prop, Mapping) and str(prop.get("name", "")).lower() == property_name.lower():
            return prop.get("value") or None
    return None


class ResourceGraphFetcher(FunctionAppFetcher):
    """Bulk discovery through Azure Resource Graph."""

    name = "graph"
    page_size = 1000

    def _graph_client(self) -> ResourceGraphClient:
        return ResourceGraphClient(self.credential, retry_total=0)

    def query_rows(self, subscription_id: str, resource_groups: list[str] | None = None) -> list[dict]:
        """Run the graph query for one subscription, following skip tokens."""
        client = self._graph_client()
        query = build_graph_query(resource_groups)
        rows: list[dict] = []
        skip_token = None
        while True:
            request = QueryRequest(
                subscriptions=[subscription_id],
                query=query,
                options=QueryRequestOptions(
                    result_format=ResultFormat.OBJECT_ARRAY,
                    top=self.page_size,
                    skip_token=skip_token,
                ),
            )
            try:
                response = self._call("resource graph query", client.resources, request)
            except AzureError as exc:
                raise DiscoveryError(
                    f"Resource Graph query failed for subscription {subscription_id}: {exc}",
                    subscription_id,
                ) from exc
            rows.extend(response.data or [])
            skip_token = getattr(response, "skip_token", None)
            if not skip_token:
                break
        logger.debug("Resource Graph returned %d function app row(s) for %s", len(rows), subscription_id)
        return rows

    def fetch_subscription(
        self, subscription_id: str, resource_groups: list[str] | None = None
    ) -> list[FunctionAppRecord]:
        rows = self.query_rows(subscription_id, resource_groups)
        web = self._web_client(subscription_id)
        records: list[FunctionAppRecord] = []
        for row in rows:
            name = row.get("name", "")
            resource_group = row.get("resourceGroup", "")
            net_framework = _graph_site_value(row, "netFrameworkVersion", "NetFrameworkVersion")
            linux_fx = _graph_site_value(row, "linuxFxVersion", "LinuxFxVersion")
            try:
                if net_framework is None and linux_fx is None:
                    config = self._site_config(web, resource_group, name)
                    net_framework = _site_config_value(config, "net_framework_version")
                    linux_fx = _site_config_value(config, "linux_fx_version")
                settings = self._app_settings(web, resource_group, name)
            except AzureError as exc:
                self.log_failure(f"Skipping {resource_group}/{name}: could not read configuration ({exc})")
                continue
            records.append(parse_function_app({
                "subscriptionId": row.get("subscriptionId") or subscription_id,
                "resourceGroup": resource_group,
                "name": name,
                "location": row.get("location", ""),
                "kind": row.get("kind", ""),
                "netFrameworkVersion": net_framework,
                "linuxFxVersion": linux_fx,
                "appSettings": settings,
            }))
        return records


# ---------------------------------------------------------------------------
# Per-resource-group strategy
# ---------------------------------------------------------------------------

class ResourceGroupFetcher(FunctionAppFetcher):
    """Enumerate resource groups, then the Function Apps inside each."""

    name = "resource-group"

    def _resource_client(self, subscription_id: str) -> ResourceManagementClient:
        return ResourceManagementClient(self.credential, subscription_id, retry_total=0)

    def list_resource_groups(self, subscription_id: str) -> list[str]:
        client = self._resource_client(subscription_id)
        try:
            groups = self._call("resource group listing", lambda: list(client.resource_groups.list()))
        except AzureError as exc:
            raise DiscoveryError(
                f"Could not list resource groups in subscription {subscription_id}: {exc}",
                subscription_id,
            ) from exc
        return [g.name for g in groups if g.name]

    def fetch_subscription(
        self, subscription_id: str, resource_groups: list[str] | None = None
    ) -> list[FunctionAppRecord]:
        groups = list(dict.fromkeys(resource_groups or self.list_resource_groups(subscription_id)))
        web = self._web_client(subscription_id)
        records: list[FunctionAppRecord] = []

        for resource_group in groups:
            try:
                sites = self._call(
                    f"site listing in {resource_group}",
                    lambda rg=resource_group: list(web.web_apps.list_by_resource_group(rg)),
                )
            except AzureError as exc:
                self.log_failure(f"Skipping resource group {resource_group}: could not list sites ({exc})")
                continue

            for site in sites:
                kind = site.kind or ""
                if not parse_kind(kind).is_function_app:
                    continue
                try:
                    config = self._site_config(web, resource_group, site.name)
                    settings = self._app_settings(web, resource_group, site.name)
                except AzureError as exc:
                    self.log_failure(f"Skipping {resource_group}/{site.name}: could not read configuration ({exc})")
                    continue
                records.append(parse_function_app({
                    "subscriptionId": subscription_id,
                    "resourceGroup": resource_group,
                    "name": site.name,
                    "location": site.location,
                    "kind": kind,
                    "netFrameworkVersion": _site_config_value(config, "net_framework_version"),
                    "linuxFxVersion": _site_config_value(config, "linux_fx_version"),
                    "appSettings": settings,
                }))

        logger.debug("Found %d function app(s) across %d resource group(s) in %s",
                     len(records), len(groups), subscription_id)
        return records


# ---------------------------------------------------------------------------
# Graph first, resource groups as fallback
# ---------------------------------------------------------------------------

class AutoFetcher(FunctionAppFetcher):
    """Try Resource Graph; fall back to per-resource-group enumeration."""

    name = "auto"

    def __init__(self, credential: Any | None = None, **kwargs: Any) -> None:
        super().__init__(credential, **kwargs)
        self.graph = ResourceGraphFetcher(self.credential, **kwargs)
        self.fallback = ResourceGroupFetcher(self.credential, **kwargs)
        # Share one failure log across the wrapped strategies.
        self.graph.failed_operations = self.fallback.failed_operations = self.failed_operations
        self.graph._lock = self.fallback._lock = self._lock

    def fetch_subscription(
        self, subscription_id: str, resource_groups: list[str] | None = None
    ) -> list[FunctionAppRecord]:
        try:
            return self.graph.fetch_subscription(subscription_id, resource_groups)
        except DiscoveryError as exc:
            self.log_failure(f"{exc}; falling back to resource group enumeration")
        return self.fallback.fetch_subscription(subscription_id, resource_groups)


_FETCHERS: dict[str, type[FunctionAppFetcher]] = {
    AutoFetcher.name: AutoFetcher,
    ResourceGraphFetcher.name: ResourceGraphFetcher,
    ResourceGroupFetcher.name: ResourceGroupFetcher,
}


def create_fetcher(strategy: str = "auto", credential: Any | None = None, **kwargs: Any) -> FunctionAppFetcher:
    """Instantiate the fetcher registered under ``strategy``."""
    try:
        fetcher_cls = _FETCHERS[strategy]
    except KeyError:
        raise ValueError(f"Unknown discovery strategy {strategy!r}; expected one of {sorted(_FETCHERS)}") from None
    return fetcher_cls(credential, **kwargs)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def fetch_function_apps(
    scope: ScanScope,
    fetcher: FunctionAppFetcher | str = "auto",
    *,
    max_workers: int = 4,
) -> list[FunctionAppRecord]:
    """Discover Function Apps in every subscription of ``scope``.

    Subscriptions are scanned concurrently (bounded by ``max_workers``);
    the returned list keeps subscription order.  A subscription that fails
    is logged and skipped.  ``DiscoveryError`` is raised only when every
    subscription failed.
    """
    if isinstance(fetcher, str):
        fetcher = create_fetcher(fetcher)
    subscription_ids = list(dict.fromkeys(scope.subscription_ids))
    if not subscription_ids:
        return []

    by_subscription: dict[str, list[FunctionAppRecord]] = {}
    failed: list[str] = []
    workers = max(1, min(max_workers, len(subscription_ids)))

    logger.info("Scanning %d subscription(s) using %s discovery …", len(subscription_ids), fetcher.name)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            pool.submit(fetcher.fetch_subscription, sub, scope.resource_groups or None): sub
            for sub in subscription_ids
        }
        for future in as_completed(futures):
            sub = futures[future]
            try:
                by_subscription[sub] = future.result()
                logger.info("Subscription %s: %d function app(s)", sub, len(by_subscription[sub]))
            except (DiscoveryError, AzureError) as exc:
                logger.error("Subscription %s failed: %s", sub, exc)
                fetcher.log_failure(f"Subscription {sub} skipped: {exc}")
                failed.append(sub)

    if failed and len(failed) == len(subscription_ids):
        raise DiscoveryError(f"Discovery failed for every subscription: {', '.join(failed)}")

    records: list[FunctionAppRecord] = []
    for sub in subscription_ids:
        records.extend(by_subscription.get(sub, []))
    return records
