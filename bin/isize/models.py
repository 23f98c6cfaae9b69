"""Data models for insert-size scanning."""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

# Read paired (0x1), mapped in proper pair (0x2), first segment in template (0x40)
PAIRED_PRIMARY_MASK = 0x1 | 0x2 | 0x40
# Secondary (0x100) or supplementary (0x800) alignment
SECONDARY_SUPPLEMENTARY_MASK = 0x100 | 0x800

DEFAULT_UPPER = 500


@dataclass
class AlignmentRecord:
    """The four BAM record fields needed for insert-size statistics.

    A single instance is overwritten by the decoder for every record.
    """

    reference_id: int = -1
    mate_reference_id: int = -1
    template_length: int = 0
    flag: int = 0


@dataclass
class InsertSizeAggregates:
    """Running totals folded from qualifying read pairs.

    ``all_*`` fields count every qualifying pair. ``count``, ``insert_sum``
    and ``histogram`` only count pairs with insert size in ``[0, upper]``.
    """

    upper: int = DEFAULT_UPPER
    all_count: int = 0
    all_insert_sum: int = 0
    count: int = 0
    insert_sum: int = 0
    histogram: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.upper < 0:
            raise ValueError(f"upper must be >= 0, got {self.upper}")
        self.histogram = np.zeros(self.upper + 1, dtype=np.uint64)


@dataclass(frozen=True)
class InsertSizeSummary:
    """Final insert-size statistics for one BAM file."""

    all_count: int
    all_mean: float
    count: int
    mean: float
    std: float
    q1: int
    q2: int
    q3: int

    def to_dict(self) -> dict:
        """Return the summary as an ordered, display-keyed dict."""
        return {
            "Total count": self.all_count,
            "Total mean insert size": round2(self.all_mean),
            "Qualified read count": self.count,
            "Qualified mean insert size": round2(self.mean),
            "Qualified insert size SD": round2(self.std),
            "Qualified Q1": self.q1,
            "Qualified Q2": self.q2,
            "Qualified Q3": self.q3,
        }


@dataclass(frozen=True)
class InsertSizeDistribution:
    """Normalized histogram ready for plotting."""

    insert_size: np.ndarray
    frequency: np.ndarray
    height_max: int
    axis_max: float


def round2(value: float) -> float:
    """Round to two decimals by formatting and re-parsing."""
    return float(f"{value:.2f}")
