"""Theme helpers shared by the box and volcano plots."""

from __future__ import annotations

from dataclasses import dataclass

import matplotlib.pyplot as plt
from matplotlib.ticker import AutoMinorLocator

__all__ = ["FontSizes", "apply_grid_style", "apply_text_sizes"]


@dataclass(frozen=True)
class FontSizes:
    """Font sizes (points) for the six independently sized text regions."""

    xaxis_text: float = 10
    yaxis_text: float = 10
    xaxis_title: float = 10
    yaxis_title: float = 10
    main_title: float = 15
    legend_text: float = 9


def apply_grid_style(ax: plt.Axes, grid: bool, *, minor_x: bool = True) -> None:
    """
    Apply one of two presets.

    ``grid=True`` keeps a full frame with major and minor gridlines.
    ``grid=False`` drops gridlines and the top/right spines.
    """
    if grid:
        for spine in ax.spines.values():
            spine.set_visible(True)
            spine.set_color("black")
        if minor_x:
            ax.xaxis.set_minor_locator(AutoMinorLocator())
        ax.yaxis.set_minor_locator(AutoMinorLocator())
        ax.grid(True, which="major", color="#D9D9D9", linewidth=0.8)
        ax.grid(True, which="minor", color="#EFEFEF", linewidth=0.5)
        ax.set_axisbelow(True)
    else:
        ax.grid(False, which="both")
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)


def apply_text_sizes(ax: plt.Axes, sizes: FontSizes) -> None:
    ax.tick_params(axis="x", labelsize=sizes.xaxis_text)
    ax.tick_params(axis="y", labelsize=sizes.yaxis_text)
    ax.xaxis.label.set_size(sizes.xaxis_title)
    ax.yaxis.label.set_size(sizes.yaxis_title)
    ax.title.set_size(sizes.main_title)
    legend = ax.get_legend()
    if legend is not None:
        for text in legend.get_texts():
            text.set_fontsize(sizes.legend_text)
