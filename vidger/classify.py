"""Significance classification and display-range handling for volcano rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

__all__ = [
    "Category",
    "VolcanoThresholds",
    "drop_nonfinite",
    "resolve_display_range",
    "classify",
    "flag_out_of_range",
]

logger = logging.getLogger(__name__)

DEFAULT_PADJ_CUTOFF = 0.05
DEFAULT_LFC_CUTOFF = 1.0
DEFAULT_RANGE_QUANTILE = 0.99


class Category(str, Enum):
    SIG_UP = "sig_up"
    SIG_DOWN = "sig_down"
    NOT_SIG = "not_sig"


def resolve_display_range(
    logfc: Sequence[float],
    display_range: Optional[Sequence[float]] = None,
) -> Tuple[float, float]:
    """
    Return the x-axis window as ``(low, high)``.

    When ``display_range`` is None the window is ``(-q, q)`` with ``q`` the
    99th percentile of ``|logFC|`` over finite values.
    """
    if display_range is not None:
        low, high = (float(v) for v in display_range)
        if low > high:
            raise ValueError(f"display_range must be (low, high); got {tuple(display_range)}")
        return low, high
    values = np.asarray(logfc, dtype=float)
    values = np.abs(values[np.isfinite(values)])
    if values.size == 0:
        raise ValueError("Cannot derive a display range: no finite log fold changes.")
    q = float(np.quantile(values, DEFAULT_RANGE_QUANTILE))
    return -q, q


@dataclass(frozen=True)
class VolcanoThresholds:
    """Cutoffs applied to one volcano plot."""

    padj_cutoff: float = DEFAULT_PADJ_CUTOFF
    lfc_cutoff: float = DEFAULT_LFC_CUTOFF
    display_range: Tuple[float, float] = (-np.inf, np.inf)

    @classmethod
    def resolve(
        cls,
        logfc: Sequence[float],
        *,
        padj: float = DEFAULT_PADJ_CUTOFF,
        lfc: Optional[float] = None,
        x_lim: Optional[Sequence[float]] = None,
    ) -> "VolcanoThresholds":
        window = resolve_display_range(logfc, x_lim)
        logger.debug("Volcano display range resolved to (%.3f, %.3f)", *window)
        return cls(
            padj_cutoff=float(padj),
            lfc_cutoff=DEFAULT_LFC_CUTOFF if lfc is None else float(lfc),
            display_range=window,
        )


def drop_nonfinite(rows: pd.DataFrame) -> pd.DataFrame:
    """Remove rows whose ``logFC`` is NaN or infinite."""
    finite = np.isfinite(rows["logFC"].to_numpy(dtype=float))
    if not finite.all():
        logger.debug("Dropping %d features with non-finite logFC", int((~finite).sum()))
    return rows.loc[finite].reset_index(drop=True)


def classify(rows: pd.DataFrame, padj_cutoff: float, lfc_cutoff: float) -> pd.DataFrame:
    """Add ``isDE`` and ``category`` columns; returns a new frame."""
    out = rows.copy()
    logfc = out["logFC"].to_numpy(dtype=float)
    is_de = out["padj"].to_numpy(dtype=float) < padj_cutoff
    out["isDE"] = is_de
    out["category"] = np.select(
        [is_de & (logfc > lfc_cutoff), is_de & (logfc < -lfc_cutoff)],
        [Category.SIG_UP.value, Category.SIG_DOWN.value],
        default=Category.NOT_SIG.value,
    )
    return out


def flag_out_of_range(rows: pd.DataFrame, display_range: Tuple[float, float]) -> pd.DataFrame:
    """Add ``out_of_range`` and the clamped ``plot_x``; ``logFC`` is left untouched."""
    low, high = display_range
    out = rows.copy()
    logfc = out["logFC"].to_numpy(dtype=float)
    out["out_of_range"] = (logfc < low) | (logfc > high)
    out["plot_x"] = np.maximum(low, np.minimum(high, logfc))
    return out
