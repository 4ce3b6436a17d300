"""
Turn raw per-country audio feature records into tagged observations.

A record without a usable value for the selected feature is a data error:
it is skipped and reported, so no NaN ever reaches the quantile code.
"""

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaggedObservation:
    """One track's value for the selected feature, tagged with its country."""
    feature_value: float
    group_key: str


def feature_value(record: dict, feature: str) -> float | None:
    """Numeric value of `feature` in `record`, or None when absent/unusable."""
    val = record.get(feature)
    # bool is an int subclass but never a meaningful audio feature
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    if not math.isfinite(val):
        return None
    return float(val)


def extract_feature(
    country_tracks: dict[str, list[dict]], feature: str
) -> list[TaggedObservation]:
    """Flatten {country: [record, ...]} into TaggedObservations for `feature`."""
    observations: list[TaggedObservation] = []
    for country, records in country_tracks.items():
        skipped = 0
        for record in records:
            val = feature_value(record, feature)
            if val is None:
                skipped += 1
                continue
            observations.append(TaggedObservation(val, country))
        if skipped:
            logger.warning(
                "%s: skipped %d of %d tracks with no numeric %r",
                country, skipped, len(records), feature,
            )
    return observations
