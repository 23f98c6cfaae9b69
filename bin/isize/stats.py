"""Pair filtering, histogram accumulation and summary statistics."""
from __future__ import annotations

import math

import numpy as np

from isize.models import (
    PAIRED_PRIMARY_MASK,
    SECONDARY_SUPPLEMENTARY_MASK,
    AlignmentRecord,
    InsertSizeAggregates,
    InsertSizeDistribution,
    InsertSizeSummary,
)

QUANTILES = (0.25, 0.5, 0.75)


class NoDataError(Exception):
    """Raised when no read pair qualifies for insert-size statistics."""


def is_qualifying_pair(record: AlignmentRecord) -> bool:
    """Properly paired, primary, and mate on the same reference."""
    return (
        record.flag & PAIRED_PRIMARY_MASK == PAIRED_PRIMARY_MASK
        and record.flag & SECONDARY_SUPPLEMENTARY_MASK == 0
        and record.reference_id == record.mate_reference_id
    )


def accept(record: AlignmentRecord, aggregates: InsertSizeAggregates) -> bool:
    """Fold one record into the aggregates.

    Every qualifying pair updates the ``all_*`` totals; only insert sizes
    within ``[0, upper]`` reach the bounded totals and the histogram.
    Returns True when the record qualified.
    """
    if not is_qualifying_pair(record):
        return False

    tlen = abs(record.template_length)
    aggregates.all_count += 1
    aggregates.all_insert_sum += tlen

    if tlen <= aggregates.upper:
        aggregates.count += 1
        aggregates.insert_sum += tlen
        aggregates.histogram[tlen] += 1
    return True


def quantile_cut_points(histogram: np.ndarray, count: int) -> list[int]:
    """Insert sizes at which the cumulative count first exceeds each quantile.

    Thresholds are ``floor(count * q)``; the cut-point is the first bin whose
    cumulative count is strictly greater than the threshold. Each threshold
    is resolved independently, so one bin can carry several cut-points:
    pairs at 100 and 200 give ``[100, 200, 200]``.
    """
    cumulative = np.cumsum(histogram)
    thresholds = [int(count * q) for q in QUANTILES]
    return [int(np.searchsorted(cumulative, t, side="right")) for t in thresholds]


def finalize(aggregates: InsertSizeAggregates) -> InsertSizeSummary:
    """Compute means, population SD and quartile cut-points.

    Raises
    ------
    NoDataError
        If no pair qualified, or none fell within ``[0, upper]``.
    """
    if aggregates.all_count == 0:
        raise NoDataError("no properly paired primary reads on a shared reference")
    if aggregates.count == 0:
        raise NoDataError(
            f"none of {aggregates.all_count} qualifying pairs has an insert size <= {aggregates.upper}"
        )

    all_mean = aggregates.all_insert_sum / aggregates.all_count
    mean = aggregates.insert_sum / aggregates.count

    sizes = np.arange(aggregates.upper + 1, dtype=np.float64)
    weights = aggregates.histogram.astype(np.float64)
    variance = float(np.dot((sizes - mean) ** 2, weights)) / aggregates.count

    q1, q2, q3 = quantile_cut_points(aggregates.histogram, aggregates.count)
    return InsertSizeSummary(
        all_count=aggregates.all_count,
        all_mean=all_mean,
        count=aggregates.count,
        mean=mean,
        std=math.sqrt(variance),
        q1=q1,
        q2=q2,
        q3=q3,
    )


def round_max(value: float) -> float:
    """Round a positive value up to a tidy axis limit.

    The value is scaled into ``[1, 10)`` by powers of ten, ceiled, and padded
    by 0.1 of that decade, e.g. 0.333 -> 0.41 and 25 -> 31.
    """
    if value <= 0:
        raise ValueError(f"axis limit must be positive, got {value}")
    digits = 0
    while value >= 10:
        value /= 10
        digits += 1
    while value < 1:
        value *= 10
        digits -= 1
    return (math.ceil(value) + 0.1) * 10.0 ** digits


def normalize(aggregates: InsertSizeAggregates) -> InsertSizeDistribution:
    """Turn the histogram into frequencies for the chart."""
    if aggregates.count == 0:
        raise NoDataError("cannot normalize an empty histogram")
    height_max = int(aggregates.histogram.max())
    return InsertSizeDistribution(
        insert_size=np.arange(aggregates.upper + 1),
        frequency=aggregates.histogram / aggregates.count,
        height_max=height_max,
        axis_max=round_max(height_max / aggregates.count),
    )
