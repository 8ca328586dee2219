"""Result container and presentation step shared by the plotting entry points."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import NamedTuple, Optional, Union

import pandas as pd
from matplotlib import pyplot as plt

__all__ = ["PlotResult", "present", "save_figure", "sanitize_fragment"]

logger = logging.getLogger(__name__)


class PlotResult(NamedTuple):
    """The plotted table and the figure drawn from it."""

    data: pd.DataFrame
    figure: plt.Figure

    def save(self, destination: Union[str, Path], *, dpi: int = 300, close: bool = False) -> Path:
        """Write the figure to ``destination`` (format inferred from the suffix)."""
        return save_figure(self.figure, destination, dpi=dpi, close=close)


def sanitize_fragment(fragment: str) -> str:
    clean = re.sub(r"[^A-Za-z0-9._-]+", "_", str(fragment).strip())
    clean = re.sub(r"_+", "_", clean).strip("_")
    return clean or "plot"


def save_figure(
    fig: plt.Figure,
    destination: Union[str, Path],
    *,
    dpi: int = 300,
    close: bool = True,
) -> Path:
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(destination, dpi=dpi, bbox_inches="tight")
    if close:
        plt.close(fig)
    logger.info("Saved plot to %s", destination)
    return destination


def present(data: pd.DataFrame, figure: plt.Figure, *, data_return: bool) -> Optional[PlotResult]:
    """
    Either hand back ``(data, figure)`` untouched or show the figure.

    Nothing is shown when ``data_return`` is True; the caller owns the figure.
    """
    if data_return:
        return PlotResult(data=data, figure=figure)
    plt.show()
    return None
