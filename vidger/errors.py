"""Exception and warning types raised by the plotting entry points."""

from __future__ import annotations

__all__ = [
    "VidgerError",
    "InvalidAnalysisType",
    "InvalidComparison",
    "MissingFactor",
    "NoMatchingHighlights",
    "PartialHighlightWarning",
]


class VidgerError(Exception):
    """Base class for errors raised by vidger."""


class InvalidAnalysisType(VidgerError, ValueError):
    """The analysis type is missing or not one of cuffdiff, deseq, edger."""


class InvalidComparison(VidgerError, ValueError):
    """A requested condition label is not a level of the input object."""

    def __init__(self, missing, available):
        self.missing = list(missing)
        self.available = list(available)
        super().__init__(
            f"Condition(s) {self.missing} not found in data. "
            f"Available levels: {', '.join(map(str, self.available)) or 'none'}."
        )


class MissingFactor(VidgerError, ValueError):
    """A DESeq2 dataset was passed without the factor naming its conditions."""


class NoMatchingHighlights(VidgerError, ValueError):
    """None of the requested highlight IDs are present in the data."""


class PartialHighlightWarning(UserWarning):
    """Some requested highlight IDs were not found and have been dropped."""

    def __init__(self, unmatched):
        self.unmatched = list(unmatched)
        super().__init__(
            f"Some IDs not found in data: {self.unmatched}. Plotting the remaining IDs."
        )
