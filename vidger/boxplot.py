"""Per-condition expression distributions (box, violin and related plots)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.patches import Patch

from .base import PlotResult, present
from .sources import AnalysisType, ResultSource, make_source
from .styles import FontSizes, apply_grid_style, apply_text_sizes

__all__ = ["BoxAesthetic", "vs_boxplot", "build_expression_table", "compose_boxplot"]

logger = logging.getLogger(__name__)


class BoxAesthetic(str, Enum):
    BOX = "box"
    VIOLIN = "violin"
    BOXDOT = "boxdot"
    VIODOT = "viodot"
    VIOSUMM = "viosumm"
    NOTCH = "notch"

    @classmethod
    def parse(cls, value: Union[str, "BoxAesthetic"]) -> "BoxAesthetic":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"aes must be one of {choices}; got {value!r}") from exc

    @property
    def is_violin(self) -> bool:
        return self in (BoxAesthetic.VIOLIN, BoxAesthetic.VIODOT, BoxAesthetic.VIOSUMM)


_TITLES = {
    BoxAesthetic.BOX: "Box plot",
    BoxAesthetic.VIOLIN: "Violin plot",
    BoxAesthetic.BOXDOT: "Box plot with points",
    BoxAesthetic.VIODOT: "Violin plot with points",
    BoxAesthetic.VIOSUMM: "Violin plot with mean ± SD",
    BoxAesthetic.NOTCH: "Notched box plot",
}


def build_expression_table(source: ResultSource) -> pd.DataFrame:
    """Long-form ``id, key, value`` table with undefined values removed."""
    table = source.expression_table()
    undefined = ~np.isfinite(table["value"].to_numpy(dtype=float))
    if undefined.any():
        logger.debug("Dropping %d undefined expression values", int(undefined.sum()))
        table = table.loc[~undefined].reset_index(drop=True)
    return table


def _palette(fill_color: Optional[str], n_colors: int):
    if fill_color is None:
        return sns.color_palette(n_colors=n_colors)
    return sns.color_palette(fill_color, n_colors=n_colors)


def compose_boxplot(
    table: pd.DataFrame,
    *,
    order: Sequence[str],
    aes: Union[str, BoxAesthetic] = BoxAesthetic.BOX,
    fill_color: Optional[str] = None,
    y_label: str = "log10(expression + 1)",
    title: bool = True,
    legend: bool = True,
    grid: bool = True,
    sizes: FontSizes = FontSizes(),
    figsize: Tuple[float, float] = (8, 6),
    ax: Optional[plt.Axes] = None,
) -> Tuple[plt.Figure, plt.Axes]:
    """Draw one distribution per condition in ``order``."""
    style = BoxAesthetic.parse(aes)
    order = [str(level) for level in order]

    created_fig = False
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
        created_fig = True
    else:
        fig = ax.figure

    palette = _palette(fill_color, len(order))
    common = dict(
        data=table,
        x="key",
        y="value",
        hue="key",
        order=order,
        hue_order=order,
        palette=palette,
        dodge=False,
        legend=False,
        ax=ax,
    )
    if style.is_violin:
        sns.violinplot(**common, inner="box" if style is BoxAesthetic.VIOLIN else None, cut=0)
    else:
        sns.boxplot(
            **common,
            notch=style is BoxAesthetic.NOTCH,
            showfliers=style is not BoxAesthetic.BOXDOT,
        )

    if style in (BoxAesthetic.BOXDOT, BoxAesthetic.VIODOT):
        sns.stripplot(
            data=table,
            x="key",
            y="value",
            order=order,
            color="black",
            size=1.5,
            alpha=0.3,
            jitter=0.25,
            legend=False,
            zorder=3,
            ax=ax,
        )
    elif style is BoxAesthetic.VIOSUMM:
        summary = table.groupby("key")["value"].agg(["mean", "std"]).reindex(order)
        ax.errorbar(
            np.arange(len(order)),
            summary["mean"],
            yerr=summary["std"],
            fmt="o",
            color="black",
            capsize=4,
            zorder=4,
        )

    ax.set_xlabel("")
    ax.set_ylabel(y_label)
    if title:
        ax.set_title(_TITLES[style])
    if legend:
        handles = [Patch(facecolor=color, edgecolor="0.2", label=level) for level, color in zip(order, palette)]
        ax.legend(handles=handles, loc="upper left", bbox_to_anchor=(1.02, 1.0), frameon=False)
    apply_grid_style(ax, grid, minor_x=False)
    apply_text_sizes(ax, sizes)

    if created_fig:
        fig.tight_layout()
    return fig, ax


def vs_boxplot(
    data: Any,
    d_factor: Optional[str] = None,
    analysis_type: Union[str, AnalysisType, None] = None,
    title: bool = True,
    legend: bool = True,
    grid: bool = True,
    aes: Union[str, BoxAesthetic] = "box",
    fill_color: Optional[str] = None,
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
    Distribution of log10(FPKM/FPM/CPM + 1) per condition.

    ``aes`` picks the style: ``box``, ``violin``, ``boxdot``, ``viodot``,
    ``viosumm`` or ``notch``. ``fill_color`` is any seaborn palette name.
    The remaining arguments behave as in :func:`vidger.volcano.vs_volcano`.
    """
    kind = AnalysisType.parse(analysis_type)
    style = BoxAesthetic.parse(aes)
    source = make_source(data, kind, d_factor)
    table = build_expression_table(source)
    sizes = FontSizes(
        xaxis_text=xaxis_text_size,
        yaxis_text=yaxis_text_size,
        xaxis_title=xaxis_title_size,
        yaxis_title=yaxis_title_size,
        main_title=main_title_size,
        legend_text=legend_text_size,
    )
    fig, _ = compose_boxplot(
        table,
        order=source.levels(),
        aes=style,
        fill_color=fill_color,
        y_label=source.expression_label,
        title=title,
        legend=legend,
        grid=grid,
        sizes=sizes,
        figsize=figsize,
        ax=ax,
    )
    return present(table, fig, data_return=data_return)
