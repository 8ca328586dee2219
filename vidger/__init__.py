"""Box and volcano plots for Cuffdiff, DESeq2 and edgeR results."""

from ._version import __version__
from .base import PlotResult
from .boxplot import BoxAesthetic, vs_boxplot
from .classify import Category, VolcanoThresholds
from .errors import (
    InvalidAnalysisType,
    InvalidComparison,
    MissingFactor,
    NoMatchingHighlights,
    PartialHighlightWarning,
    VidgerError,
)
from .sources import AnalysisType, make_source, read_cuffdiff
from .styles import FontSizes
from .volcano import save_volcano_plots, vs_volcano

__all__ = [
    "__version__",
    "PlotResult",
    "BoxAesthetic",
    "vs_boxplot",
    "Category",
    "VolcanoThresholds",
    "InvalidAnalysisType",
    "InvalidComparison",
    "MissingFactor",
    "NoMatchingHighlights",
    "PartialHighlightWarning",
    "VidgerError",
    "AnalysisType",
    "make_source",
    "read_cuffdiff",
    "FontSizes",
    "save_volcano_plots",
    "vs_volcano",
]
