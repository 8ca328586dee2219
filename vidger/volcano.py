"""Volcano plots (-log10 padj against log2 fold change) for two conditions."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from adjustText import adjust_text

from .aesthetics import (
    CATEGORY_COLORS,
    EMPHASIS_SIZE,
    HIGHLIGHT_COLOR,
    SHAPE_MARKERS,
    CategoryCounts,
    category_label,
    count_categories,
    map_aesthetics,
)
from .base import PlotResult, present, sanitize_fragment, save_figure
from .classify import Category, VolcanoThresholds, classify, drop_nonfinite, flag_out_of_range
from .errors import NoMatchingHighlights, PartialHighlightWarning
from .sources import AnalysisType, ResultSource, make_source
from .styles import FontSizes, apply_grid_style, apply_text_sizes

__all__ = [
    "vs_volcano",
    "build_volcano_table",
    "compose_volcano",
    "resolve_highlights",
    "save_volcano_plots",
]

logger = logging.getLogger(__name__)

X_LABEL = r"$\log_{2}$ fold change"
Y_LABEL = r"$-\log_{10}$(padj)"
_DRAW_ORDER = (Category.NOT_SIG, Category.SIG_DOWN, Category.SIG_UP)


def resolve_highlights(highlight: Union[str, Iterable[str]], available: Iterable[str]) -> List[str]:
    """
    Restrict ``highlight`` to ids present in ``available``.

    Raises :class:`NoMatchingHighlights` when nothing matches and warns with
    :class:`PartialHighlightWarning` when only some ids match.
    """
    if isinstance(highlight, str):
        requested = [highlight]
    else:
        try:
            requested = list(dict.fromkeys(str(item) for item in highlight))
        except TypeError as exc:
            raise TypeError('"highlight" must be a sequence of IDs.') from exc
    if not requested:
        return []

    present_ids = set(available)
    matched = [item for item in requested if item in present_ids]
    unmatched = [item for item in requested if item not in present_ids]
    if not matched:
        raise NoMatchingHighlights("No IDs in highlight vector are present in data frame.")
    if unmatched:
        warnings.warn(PartialHighlightWarning(unmatched), stacklevel=4)
    return matched


def build_volcano_table(
    source: ResultSource,
    x: str,
    y: str,
    *,
    padj: float = 0.05,
    lfc: Optional[float] = None,
    x_lim: Optional[Sequence[float]] = None,
    highlight: Optional[Union[str, Iterable[str]]] = None,
    epsilon: float = 1e-300,
) -> Tuple[pd.DataFrame, VolcanoThresholds]:
    """Extract, classify and annotate the rows behind a volcano plot."""
    rows = drop_nonfinite(source.volcano_rows(x, y))
    thresholds = VolcanoThresholds.resolve(rows["logFC"], padj=padj, lfc=lfc, x_lim=x_lim)
    rows = classify(rows, thresholds.padj_cutoff, thresholds.lfc_cutoff)
    rows = flag_out_of_range(rows, thresholds.display_range)
    rows["neg_log10_padj"] = -np.log10(rows["padj"] + epsilon)

    hl: List[str] = []
    if highlight is not None:
        hl = resolve_highlights(highlight, rows["id"])
    logger.debug("%s vs. %s: %d features, %s", y, x, len(rows), count_categories(rows))
    return map_aesthetics(rows, hl), thresholds


def _draw_highlights(ax: plt.Axes, table: pd.DataFrame, fontsize: float) -> None:
    hl = table.loc[table["highlighted"]]
    if hl.empty:
        return
    ax.scatter(
        hl["plot_x"],
        hl["neg_log10_padj"],
        c=HIGHLIGHT_COLOR,
        s=EMPHASIS_SIZE * 1.5,
        edgecolors="none",
        zorder=4,
    )
    texts = [
        ax.text(
            px,
            py,
            label,
            fontsize=fontsize,
            zorder=5,
            bbox=dict(boxstyle="round,pad=0.3", fc="white", ec="0.1", alpha=0.9),
        )
        for px, py, label in zip(hl["plot_x"], hl["neg_log10_padj"], hl["id"])
    ]
    adjust_text(texts, ax=ax, arrowprops=dict(arrowstyle="-", color="0.1", lw=1))


def compose_volcano(
    table: pd.DataFrame,
    thresholds: VolcanoThresholds,
    *,
    x: str,
    y: str,
    counts: Optional[CategoryCounts] = None,
    title: bool = True,
    legend: bool = True,
    grid: bool = True,
    sizes: FontSizes = FontSizes(),
    figsize: Tuple[float, float] = (8, 6),
    ax: Optional[plt.Axes] = None,
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Draw an annotated volcano table (see :func:`build_volcano_table`).

    Points are drawn at ``plot_x`` so values outside the display range sit
    on its boundary with the clipped marker.
    """
    created_fig = False
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
        created_fig = True
    else:
        fig = ax.figure

    counts = counts if counts is not None else count_categories(table)
    point_alpha = 0.4 if table["highlighted"].any() else 0.7
    handles = []
    for category in _DRAW_ORDER:
        subset = table.loc[table["category"] == category.value]
        if subset.empty:
            continue
        color = CATEGORY_COLORS[category.value]
        for shape, marker in SHAPE_MARKERS.items():
            part = subset.loc[subset["shape"] == shape]
            if part.empty:
                continue
            ax.scatter(
                part["plot_x"],
                part["neg_log10_padj"],
                c=color,
                marker=marker,
                s=part["size"].to_numpy(),
                alpha=point_alpha,
                edgecolors="none",
                zorder=2,
            )
        handles.append(
            Line2D([], [], linestyle="none", marker="o", markersize=6, color=color,
                   label=category_label(category.value, thresholds.padj_cutoff, thresholds.lfc_cutoff))
        )
    if table["out_of_range"].any():
        handles.append(
            Line2D([], [], linestyle="none", marker=SHAPE_MARKERS["clipped"], markersize=6,
                   color="0.4", label="outside x-limits")
        )

    line_style = dict(color="0.3", linestyle="dashed", linewidth=1, zorder=1)
    ax.axvline(-thresholds.lfc_cutoff, **line_style)
    ax.axvline(thresholds.lfc_cutoff, **line_style)
    ax.axhline(-np.log10(thresholds.padj_cutoff), **line_style)
    ax.set_xlim(*thresholds.display_range)

    ax.text(0.02, 0.98, f"{counts.down} down", transform=ax.transAxes, ha="left", va="top",
            color=CATEGORY_COLORS[Category.SIG_DOWN.value], fontsize=sizes.legend_text)
    ax.text(0.98, 0.98, f"{counts.up} up", transform=ax.transAxes, ha="right", va="top",
            color=CATEGORY_COLORS[Category.SIG_UP.value], fontsize=sizes.legend_text)

    ax.set_xlabel(X_LABEL)
    ax.set_ylabel(Y_LABEL)
    if title:
        ax.set_title(f"{y} vs. {x}")
    if legend and handles:
        ax.legend(handles=handles, loc="upper left", bbox_to_anchor=(1.02, 1.0), frameon=False)
    apply_grid_style(ax, grid)
    apply_text_sizes(ax, sizes)

    _draw_highlights(ax, table, sizes.legend_text)

    if created_fig:
        fig.tight_layout()
    return fig, ax


def vs_volcano(
    x: str,
    y: str,
    data: Any,
    d_factor: Optional[str] = None,
    analysis_type: Union[str, AnalysisType, None] = None,
    padj: float = 0.05,
    x_lim: Optional[Sequence[float]] = None,
    lfc: Optional[float] = None,
    title: bool = True,
    legend: bool = True,
    grid: bool = True,
    highlight: Optional[Union[str, Iterable[str]]] = None,
    data_return: bool = False,
    xaxis_text_size: float = 10,
    yaxis_text_size: float = 10,
    xaxis_title_size: float = 10,
    yaxis_title_size: float = 10,
    main_title_size: float = 15,
    legend_text_size: float = 9,
    *,
    figsize: Tuple[float, float] = (8, 6),
    ax: Optional[plt.Axes] = None,
) -> Optional[PlotResult]:
    """
    Volcano plot of ``y`` against ``x`` from Cuffdiff, DESeq2 or edgeR output.

    Parameters
    ----------
    x, y:
        Condition labels; the fold change is ``y`` relative to ``x``.
    data:
        Cuffdiff ``*_exp.diff`` table, fitted ``DeseqDataSet`` or edgeR ``DGEList``.
    d_factor:
        Metadata column holding the conditions (DESeq2 only).
    analysis_type:
        ``"cuffdiff"``, ``"deseq"`` or ``"edger"``.
    padj:
        Adjusted p-value cutoff.
    x_lim:
        ``(low, high)`` x-axis window. Defaults to the 99th percentile of
        ``|logFC|`` on both sides.
    lfc:
        Log2 fold change cutoff; 1 when None.
    title, legend, grid:
        Display toggles.
    highlight:
        IDs to overlay and label.
    data_return:
        When True return :class:`PlotResult` instead of showing the figure.
    *_size:
        Font sizes for the axis text, axis titles, main title and legend.

    Returns
    -------
    ``PlotResult(data, figure)`` when ``data_return`` is True, else None.
    """
    source = make_source(data, analysis_type, d_factor)
    table, thresholds = build_volcano_table(
        source, x, y, padj=padj, lfc=lfc, x_lim=x_lim, highlight=highlight
    )
    sizes = FontSizes(
        xaxis_text=xaxis_text_size,
        yaxis_text=yaxis_text_size,
        xaxis_title=xaxis_title_size,
        yaxis_title=yaxis_title_size,
        main_title=main_title_size,
        legend_text=legend_text_size,
    )
    fig, _ = compose_volcano(
        table,
        thresholds,
        x=str(x),
        y=str(y),
        title=title,
        legend=legend,
        grid=grid,
        sizes=sizes,
        figsize=figsize,
        ax=ax,
    )
    return present(table, fig, data_return=data_return)


def save_volcano_plots(
    data: Any,
    comparisons: Iterable[Tuple[str, str]],
    *,
    analysis_type: Union[str, AnalysisType, None],
    output_dir: Union[str, Path],
    d_factor: Optional[str] = None,
    file_prefix: str = "volcano",
    dpi: int = 300,
    **plot_kwargs: Any,
) -> List[Path]:
    """
    Render and save one volcano plot per ``(x, y)`` comparison.

    Extra keyword arguments are forwarded to :func:`vs_volcano`.
    """
    kind = AnalysisType.parse(analysis_type)
    out_dir = Path(output_dir)
    saved: List[Path] = []
    for x, y in comparisons:
        result = vs_volcano(
            x, y, data, d_factor=d_factor, analysis_type=kind, data_return=True, **plot_kwargs
        )
        filename = f"{file_prefix}_{sanitize_fragment(y)}_vs_{sanitize_fragment(x)}.png"
        saved.append(save_figure(result.figure, out_dir / filename, dpi=dpi))
    return saved
