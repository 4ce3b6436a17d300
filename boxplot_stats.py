"""
Per-country summary statistics for the boxplot.

Quartiles use linear interpolation between order statistics (R type 7, the
same estimator as numpy's default and d3.quantile). Whiskers are the
Tukey fences q1 - 1.5*IQR and q3 + 1.5*IQR; they are not clamped to the data.
"""

import math
from dataclasses import dataclass

from feature_extract import TaggedObservation

WHISKER_IQR_FACTOR = 1.5


@dataclass(frozen=True)
class GroupSummary:
    group_key: str
    q1: float
    median: float
    q3: float
    inter_quartile_range: float
    lower_whisker: float
    upper_whisker: float


def quantile(sorted_values: list[float], p: float) -> float:
    """
    R-7 quantile of an ascending sequence.

    index h = p * (n - 1); the result interpolates between the two order
    statistics bracketing h.
    """
    if not sorted_values:
        raise ValueError("quantile of an empty sequence")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"quantile probability must be in [0, 1], got {p}")

    h = p * (len(sorted_values) - 1)
    lo = math.floor(h)
    lower = sorted_values[lo]
    if lo + 1 >= len(sorted_values):
        return lower
    upper = sorted_values[lo + 1]
    return lower + (upper - lower) * (h - lo)


def summarize_values(group_key: str, values: list[float]) -> GroupSummary:
    ordered = sorted(values)
    q1 = quantile(ordered, 0.25)
    median = quantile(ordered, 0.5)
    q3 = quantile(ordered, 0.75)
    iqr = q3 - q1
    return GroupSummary(
        group_key=group_key,
        q1=q1,
        median=median,
        q3=q3,
        inter_quartile_range=iqr,
        lower_whisker=q1 - WHISKER_IQR_FACTOR * iqr,
        upper_whisker=q3 + WHISKER_IQR_FACTOR * iqr,
    )


def group_values(observations: list[TaggedObservation]) -> dict[str, list[float]]:
    """{group_key: [values]} in order of first appearance."""
    groups: dict[str, list[float]] = {}
    for obs in observations:
        groups.setdefault(obs.group_key, []).append(obs.feature_value)
    return groups


def summarize(observations: list[TaggedObservation]) -> list[GroupSummary]:
    """One GroupSummary per group that has at least one observation."""
    return [
        summarize_values(key, values)
        for key, values in group_values(observations).items()
    ]
