"""Run the classification pipeline per record and aggregate the results."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Iterator

from .bundle_estimator import estimate_bundle
from .classifier import classify
from .models import (
    ClassificationResult,
    FunctionAppRecord,
    HostingModel,
    ScanSummary,
)
from .version_resolver import resolve_version

logger = logging.getLogger(__name__)

EXTENSION_VERSION_NOT_SET = "not set"


def analyze_record(record: FunctionAppRecord) -> ClassificationResult:
    """Classify one record, resolve its version and estimate its bundle."""
    stack = classify(record)
    host_version = record.setting("FUNCTIONS_EXTENSION_VERSION")
    return ClassificationResult(
        subscription_id=record.subscription_id,
        resource_group=record.resource_group,
        name=record.name,
        location=record.location,
        runtime_stack=stack,
        runtime_version_display=resolve_version(record, stack),
        hosting_model=HostingModel.for_stack(stack),
        extension_bundle=estimate_bundle(stack, host_version),
        kind=record.kind,
        worker_runtime=record.setting("FUNCTIONS_WORKER_RUNTIME"),
        net_framework_version=record.net_framework_version,
        linux_fx_version=record.linux_fx_version,
        functions_extension_version=host_version,
    )


class ScanResults:
    """Append-only, discovery-ordered collection of classification results."""

    def __init__(self, results: Iterable[ClassificationResult] = ()) -> None:
        self._results: list[ClassificationResult] = []
        self.extend(results)

    def add(self, result: ClassificationResult) -> None:
        self._results.append(result)

    def extend(self, results: Iterable[ClassificationResult]) -> None:
        for result in results:
            self.add(result)

    @property
    def results(self) -> tuple[ClassificationResult, ...]:
        return tuple(self._results)

    def __iter__(self) -> Iterator[ClassificationResult]:
        return iter(tuple(self._results))

    def __len__(self) -> int:
        return len(self._results)

    # -- statistics ---------------------------------------------------------

    def count_by_runtime(self) -> dict[str, int]:
        return dict(Counter(r.runtime_stack.value for r in self._results))

    def count_by_extension_version(self) -> dict[str, int]:
        return dict(Counter(
            r.functions_extension_version or EXTENSION_VERSION_NOT_SET for r in self._results
        ))

    def versions_detected(self) -> int:
        return sum(1 for r in self._results if r.version_detected)

    def detection_success_rate(self) -> float:
        """Fraction of apps whose version display is not the "N/A" sentinel."""
        if not self._results:
            return 0.0
        return self.versions_detected() / len(self._results)

    def summary(self) -> ScanSummary:
        return ScanSummary(
            total=len(self._results),
            by_runtime=self.count_by_runtime(),
            by_extension_version=self.count_by_extension_version(),
            versions_detected=self.versions_detected(),
            detection_success_rate=self.detection_success_rate(),
        )


def analyze_records(records: Iterable[FunctionAppRecord]) -> ScanResults:
    """Run ``analyze_record`` over every record, preserving input order."""
    results = ScanResults()
    for record in records:
        results.add(analyze_record(record))
    summary = results.summary()
    logger.info(
        "Classified %d function app(s); version detected for %d (%.0f%%)",
        summary.total, summary.versions_detected, summary.detection_success_rate * 100,
    )
    return results
