"""Prometheus metrics for pass bundling.

Metrics goals:
- low-cardinality labels (never member names, serials or subjects)
- visibility into bundle outcomes, signing backends and member volume

Set PASS_BUNDLE_METRICS_ENABLED=0 to turn recording into a no-op.
"""
from __future__ import annotations

import os

from prometheus_client import Counter, Histogram


def _env_bool(name: str, default: bool = True) -> bool:
    v = (os.getenv(name, "") or "").strip().lower()
    if not v:
        return default
    return v in ("1", "true", "yes", "on")


BUNDLES_TOTAL = Counter(
    "pass_bundle_bundles_total",
    "Total bundling calls",
    ["outcome"],
)
SIGNATURES_TOTAL = Counter(
    "pass_bundle_signatures_total",
    "Total CMS signatures attempted",
    ["backend", "digest", "outcome"],
)
MEMBERS_WRITTEN_TOTAL = Counter(
    "pass_bundle_members_written_total",
    "Archive members written",
    ["kind"],
)
BUNDLE_LATENCY_SECONDS = Histogram(
    "pass_bundle_bundle_latency_seconds",
    "Wall time of a bundling call in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)


def metrics_enabled() -> bool:
    return _env_bool("PASS_BUNDLE_METRICS_ENABLED", True)


def record_bundle(outcome: str, seconds: float) -> None:
    if not metrics_enabled():
        return
    BUNDLES_TOTAL.labels(outcome=str(outcome)).inc()
    BUNDLE_LATENCY_SECONDS.observe(max(0.0, float(seconds)))


def record_signature(backend: str, digest: str, outcome: str) -> None:
    if metrics_enabled():
        SIGNATURES_TOTAL.labels(backend=str(backend), digest=str(digest), outcome=str(outcome)).inc()


def record_members(kind: str, count: int = 1) -> None:
    if metrics_enabled() and count > 0:
        MEMBERS_WRITTEN_TOTAL.labels(kind=str(kind)).inc(count)
