"""
Trend series for the dashboard charts
"""
from typing import Any, Dict, Iterable, List, Optional

from jivana.models import BloodTest


def collect_metrics(tests: Iterable[BloodTest]) -> List[str]:
    """Every metric name measured in any of the tests, sorted"""
    metrics = set()
    for test in tests:
        metrics.update((test.results or {}).keys())
    return sorted(metrics)


def build_metric_series(tests: Iterable[BloodTest], metric: str) -> List[Dict[str, Any]]:
    """
    One chart series for a metric

    Args:
        tests: Blood tests in any order
        metric: Metric name, e.g. "hemoglobin"

    Returns:
        [{"date": ISO date, "value": number}] sorted oldest first.
        A test without the metric contributes 0.
    """
    ordered = sorted(tests, key=lambda t: (t.date_performed, t.id or 0))
    return [
        {
            "date": test.date_performed.date().isoformat(),
            "value": (test.results or {}).get(metric, 0),
        }
        for test in ordered
    ]


def build_trends(tests: List[BloodTest], metrics: Optional[List[str]] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Series for each requested metric, or for every metric measured"""
    if not metrics:
        metrics = collect_metrics(tests)
    return {metric: build_metric_series(tests, metric) for metric in metrics}
