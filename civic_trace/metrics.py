"""Prometheus metrics for source calls and escalation runs."""

from prometheus_client import Counter, Histogram

FETCH_REQUESTS = Counter("civic_fetch_requests_total", "Source adapter calls", ["source"])
FETCH_ERRORS   = Counter("civic_fetch_errors_total",   "Source adapter errors", ["source"])
FETCH_LATENCY  = Histogram("civic_fetch_seconds", "Source adapter latency", ["source"])

LADDER_RUNS     = Counter("civic_ladder_runs_total", "Escalation runs by final tier", ["tier"])
LADDER_COVERAGE = Histogram(
    "civic_ladder_coverage", "Final coverage per escalation run",
    buckets=(0.1, 0.25, 0.5, 0.75, 0.9, 0.95, 1.0),
)
