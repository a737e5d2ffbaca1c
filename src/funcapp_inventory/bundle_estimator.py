"""Extension bundle estimation.

The real bundle configuration lives in ``host.json`` inside the deployment
package, which the resource API does not expose.  What is produced here is a
guess from the Functions host version and is always labeled as such.
"""

from __future__ import annotations

from .models import NOT_APPLICABLE, BundleEstimate, RuntimeStack

EXTENSION_BUNDLE_ID = "Microsoft.Azure.Functions.ExtensionBundle"

# Functions host version prefix -> typical bundle range
_BUNDLE_RANGES: tuple[tuple[str, str], ...] = (
    ("~4", "[2.*, 4.0.0)"),
    ("~3", "[1.*, 3.0.0)"),
)
DEFAULT_BUNDLE_RANGE = "[4.*, 5.0.0)"


def estimate_bundle(stack: RuntimeStack, functions_extension_version: str | None) -> BundleEstimate:
    """Estimate the extension bundle for a stack and host version."""
    if stack.is_dotnet:
        return BundleEstimate(
            bundle_id=NOT_APPLICABLE,
            version_range=NOT_APPLICABLE,
            estimated=False,
            basis="compiled .NET apps reference extensions directly",
        )

    if stack == RuntimeStack.UNKNOWN:
        return BundleEstimate(
            bundle_id="unknown",
            version_range="unknown",
            basis="runtime stack not detected",
        )

    host_version = (functions_extension_version or "").strip()
    for prefix, version_range in _BUNDLE_RANGES:
        if host_version.startswith(prefix):
            return BundleEstimate(
                bundle_id=EXTENSION_BUNDLE_ID,
                version_range=version_range,
                basis=f"estimated from FUNCTIONS_EXTENSION_VERSION={host_version}",
            )

    return BundleEstimate(
        bundle_id=EXTENSION_BUNDLE_ID,
        version_range=DEFAULT_BUNDLE_RANGE,
        basis="estimated default (host version not recognised)",
    )
