"""Per-row color, marker and size for volcano plots."""

from __future__ import annotations

from typing import Iterable, NamedTuple, Optional

import numpy as np
import pandas as pd

from .classify import Category

__all__ = [
    "CATEGORY_COLORS",
    "HIGHLIGHT_COLOR",
    "SHAPE_MARKERS",
    "CategoryCounts",
    "map_aesthetics",
    "count_categories",
    "category_label",
]

CATEGORY_COLORS = {
    Category.SIG_UP.value: "#D55E00",
    Category.SIG_DOWN.value: "#0072B2",
    Category.NOT_SIG.value: "#9E9E9E",
}
HIGHLIGHT_COLOR = "red"

# shape keys map onto matplotlib markers
SHAPE_MARKERS = {"normal": "o", "clipped": "^"}

POINT_SIZE = 12.0
EMPHASIS_SIZE = 36.0


class CategoryCounts(NamedTuple):
    up: int
    down: int

    def __str__(self) -> str:
        return f"{self.up} up / {self.down} down"


def map_aesthetics(rows: pd.DataFrame, highlight: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Add ``color``, ``shape``, ``size`` and ``highlighted`` columns.

    Expects the ``category`` and ``out_of_range`` columns from :mod:`vidger.classify`.
    ``highlight`` must already be restricted to ids present in ``rows``.
    """
    out = rows.copy()
    clipped = out["out_of_range"].to_numpy(dtype=bool)
    highlighted = out["id"].isin(list(highlight or [])).to_numpy()
    out["color"] = out["category"].map(CATEGORY_COLORS)
    out["shape"] = np.where(clipped, "clipped", "normal")
    out["size"] = np.where(clipped | highlighted, EMPHASIS_SIZE, POINT_SIZE)
    out["highlighted"] = highlighted
    return out


def count_categories(rows: pd.DataFrame) -> CategoryCounts:
    tally = rows["category"].value_counts()
    return CategoryCounts(
        up=int(tally.get(Category.SIG_UP.value, 0)),
        down=int(tally.get(Category.SIG_DOWN.value, 0)),
    )


def category_label(category: str, padj_cutoff: float, lfc_cutoff: float) -> str:
    """Legend text for a category."""
    if category == Category.SIG_UP.value:
        return f"padj < {padj_cutoff:g} & logFC > {lfc_cutoff:g}"
    if category == Category.SIG_DOWN.value:
        return f"padj < {padj_cutoff:g} & logFC < {-lfc_cutoff:g}"
    return "not significant"
