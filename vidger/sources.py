"""Adapters that turn Cuffdiff, DESeq2 and edgeR outputs into uniform tables.

Every adapter exposes the same three methods (see :class:`ResultSource`):

``levels()``
    Condition labels known to the object.
``volcano_rows(x, y)``
    One row per feature with columns ``id, x, y, logFC, padj`` where ``logFC``
    is the log2 fold change of ``y`` relative to ``x``.
``expression_table()``
    Long-form ``id, key, value`` table of ``log10(expression + 1)`` per
    condition, used by the box plots.

Downstream code only ever sees those tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Protocol, Sequence, Union

import numpy as np
import pandas as pd
from scipy.stats import false_discovery_control

from .errors import InvalidAnalysisType, InvalidComparison, MissingFactor

__all__ = [
    "AnalysisType",
    "ResultSource",
    "CuffdiffSource",
    "DeseqSource",
    "EdgerSource",
    "make_source",
    "read_cuffdiff",
    "VOLCANO_COLUMNS",
    "EXPRESSION_COLUMNS",
]

logger = logging.getLogger(__name__)

VOLCANO_COLUMNS = ["id", "x", "y", "logFC", "padj"]
EXPRESSION_COLUMNS = ["id", "key", "value"]

_CUFF_LOG2FC_ALIASES = ("log2(fold_change)", "log2.fold_change.", "log2_fold_change")
# inmoose.edgepy names first, then the edgeR (R) names
_EDGER_LOG2FC_ALIASES = ("log2FoldChange", "logFC")
_EDGER_PVALUE_ALIASES = ("pvalue", "PValue")


class AnalysisType(str, Enum):
    """Upstream tool that produced the input object."""

    CUFFDIFF = "cuffdiff"
    DESEQ = "deseq"
    EDGER = "edger"

    @classmethod
    def parse(cls, value: Union[str, "AnalysisType", None]) -> "AnalysisType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        choices = ", ".join(f'"{member.value}"' for member in cls)
        raise InvalidAnalysisType(f"Please specify analysis type ({choices}); got {value!r}.")


class ResultSource(Protocol):
    """Shared shape of the three tool adapters."""

    analysis_type: ClassVar[AnalysisType]
    expression_label: ClassVar[str]

    def levels(self) -> List[str]:
        ...

    def volcano_rows(self, x: str, y: str) -> pd.DataFrame:
        ...

    def expression_table(self) -> pd.DataFrame:
        ...


def _import_pydeseq2():
    try:
        from pydeseq2.ds import DeseqStats  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Optional dependency 'pydeseq2' is required for DESeq2 volcano plots. "
            "Install it via `pip install vidger[deseq]`."
        ) from exc
    return DeseqStats


def _import_edgepy():
    try:
        from inmoose.edgepy import exactTest  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Optional dependency 'inmoose' is required for edgeR volcano plots. "
            "Install it via `pip install vidger[edger]`."
        ) from exc
    return exactTest


def _level_lookup(values: Any) -> Dict[str, Any]:
    """Map the string form of each distinct level to its original value."""
    lookup: Dict[str, Any] = {}
    for value in pd.unique(pd.Series(values)):
        if pd.isna(value):
            continue
        lookup.setdefault(str(value), value)
    return lookup


def _check_levels(x: str, y: str, levels: Sequence[str]) -> None:
    missing = [label for label in (x, y) if label not in levels]
    if missing:
        raise InvalidComparison(missing, levels)


def _require_columns(df: pd.DataFrame, required: Sequence[str], what: str) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise KeyError(f"{what} missing required columns: {missing}")


def _pick_column(df: pd.DataFrame, aliases: Sequence[str], what: str) -> str:
    for name in aliases:
        if name in df.columns:
            return name
    raise KeyError(f"{what} missing a column named one of {list(aliases)}")


def _finalize_volcano(ids: Any, x: str, y: str, logfc: Any, padj: Any) -> pd.DataFrame:
    rows = pd.DataFrame(
        {
            "id": pd.Series(ids).astype(str).to_numpy(),
            "x": x,
            "y": y,
            "logFC": pd.to_numeric(pd.Series(logfc), errors="coerce").to_numpy(dtype=float),
            "padj": pd.to_numeric(pd.Series(padj), errors="coerce").to_numpy(dtype=float),
        }
    )
    undefined = rows["padj"].isna()
    if undefined.any():
        logger.debug("Dropping %d features with undefined padj", int(undefined.sum()))
        rows = rows.loc[~undefined]
    duplicated = rows["id"].duplicated()
    if duplicated.any():
        logger.debug("Dropping %d duplicated feature ids", int(duplicated.sum()))
        rows = rows.loc[~duplicated]
    return rows.reset_index(drop=True)[VOLCANO_COLUMNS]


def _to_long(means: pd.DataFrame, levels: Sequence[str]) -> pd.DataFrame:
    """Melt a features x levels table into ``id, key, value`` (log10 + 1)."""
    wide = means.loc[:, list(levels)].copy()
    wide.index = wide.index.astype(str)
    long = wide.rename_axis("id").reset_index().melt(id_vars="id", var_name="key", value_name="value")
    long["value"] = np.log10(long["value"].astype(float) + 1.0)
    return long[EXPRESSION_COLUMNS]


@dataclass
class CuffdiffSource:
    """A Cuffdiff ``*_exp.diff`` table (see :func:`read_cuffdiff`)."""

    table: pd.DataFrame

    analysis_type: ClassVar[AnalysisType] = AnalysisType.CUFFDIFF
    expression_label: ClassVar[str] = "log10(FPKM + 1)"

    def __post_init__(self) -> None:
        _require_columns(self.table, ["test_id", "sample_1", "sample_2"], "Cuffdiff table")

    @property
    def _log2fc_column(self) -> str:
        return _pick_column(self.table, _CUFF_LOG2FC_ALIASES, "Cuffdiff table")

    def levels(self) -> List[str]:
        stacked = pd.concat([self.table["sample_1"], self.table["sample_2"]], ignore_index=True)
        return list(_level_lookup(stacked))

    def volcano_rows(self, x: str, y: str) -> pd.DataFrame:
        x, y = str(x), str(y)
        _check_levels(x, y, self.levels())
        _require_columns(self.table, ["q_value"], "Cuffdiff table")
        fc_col = self._log2fc_column

        s1 = self.table["sample_1"].astype(str)
        s2 = self.table["sample_2"].astype(str)
        forward = self.table.loc[(s1 == x) & (s2 == y)]
        if not forward.empty:
            return _finalize_volcano(forward["test_id"], x, y, forward[fc_col], forward["q_value"])

        reverse = self.table.loc[(s1 == y) & (s2 == x)]
        if reverse.empty:
            tested = sorted({f"{b} vs. {a}" for a, b in zip(s1, s2)})
            raise InvalidComparison([f"{y} vs. {x}"], tested)
        logfc = -pd.to_numeric(reverse[fc_col], errors="coerce")
        return _finalize_volcano(reverse["test_id"], x, y, logfc, reverse["q_value"])

    def expression_table(self) -> pd.DataFrame:
        _require_columns(self.table, ["value_1", "value_2"], "Cuffdiff table")
        frames = []
        for sample_col, value_col in (("sample_1", "value_1"), ("sample_2", "value_2")):
            part = self.table.loc[:, ["test_id", sample_col, value_col]]
            part.columns = ["id", "key", "raw"]
            frames.append(part)
        long = pd.concat(frames, ignore_index=True)
        long["id"] = long["id"].astype(str)
        long["key"] = long["key"].astype(str)
        long = long.drop_duplicates(subset=["id", "key"], keep="first")
        long["value"] = np.log10(pd.to_numeric(long["raw"], errors="coerce") + 1.0)
        return long.reset_index(drop=True)[EXPRESSION_COLUMNS]


@dataclass
class DeseqSource:
    """A fitted :class:`pydeseq2.dds.DeseqDataSet` plus the factor holding its conditions."""

    dds: Any
    d_factor: Optional[str] = None

    analysis_type: ClassVar[AnalysisType] = AnalysisType.DESEQ
    expression_label: ClassVar[str] = "log10(FPM + 1)"

    def __post_init__(self) -> None:
        if not self.d_factor:
            raise MissingFactor(
                "DESeq2 input requires 'd_factor', the metadata column used as the contrast factor."
            )
        if self.d_factor not in self.dds.obs.columns:
            raise KeyError(
                f"Factor '{self.d_factor}' not found in dataset metadata. "
                f"Available columns: {', '.join(map(str, self.dds.obs.columns)) or 'none'}."
            )

    def _lookup(self) -> Dict[str, Any]:
        return _level_lookup(self.dds.obs[self.d_factor])

    def levels(self) -> List[str]:
        return list(self._lookup())

    def volcano_rows(self, x: str, y: str) -> pd.DataFrame:
        x, y = str(x), str(y)
        lookup = self._lookup()
        _check_levels(x, y, list(lookup))
        results = _deseq_results(self.dds, self.d_factor, lookup[y], lookup[x])
        _require_columns(results, ["log2FoldChange", "padj"], "DESeq2 results")
        return _finalize_volcano(results.index, x, y, results["log2FoldChange"], results["padj"])

    def expression_table(self) -> pd.DataFrame:
        if "normed_counts" not in self.dds.layers:
            raise AttributeError("DeseqDataSet is missing 'normed_counts' in `.layers`. Fit the dataset first.")
        raw = np.asarray(self.dds.X, dtype=float)
        normed = np.asarray(self.dds.layers["normed_counts"], dtype=float)
        # DESeq2's robust fpm(): normalized counts over the geometric mean library size
        totals = raw.sum(axis=1)
        scale = 1e6 / np.exp(np.mean(np.log(totals[totals > 0])))
        fpm = pd.DataFrame(normed * scale, index=self.dds.obs_names, columns=self.dds.var_names)
        groups = self.dds.obs[self.d_factor].astype(str).to_numpy()
        means = fpm.groupby(groups).mean().T
        return _to_long(means, self.levels())


def _deseq_results(dds: Any, factor: str, tested: Any, reference: Any) -> pd.DataFrame:
    """Run the Wald test for ``tested`` vs ``reference`` and return ``results_df``."""
    DeseqStats = _import_pydeseq2()
    stats = DeseqStats(dds, contrast=[factor, tested, reference], quiet=True)
    stats.summary()
    return stats.results_df


@dataclass
class EdgerSource:
    """An edgeR ``DGEList`` (``inmoose.edgepy.DGEList``) with estimated dispersions."""

    dgelist: Any

    analysis_type: ClassVar[AnalysisType] = AnalysisType.EDGER
    expression_label: ClassVar[str] = "log10(CPM + 1)"

    def __post_init__(self) -> None:
        _require_columns(self.dgelist.samples, ["group"], "DGEList samples")

    def _lookup(self) -> Dict[str, Any]:
        return _level_lookup(self.dgelist.samples["group"])

    def levels(self) -> List[str]:
        return list(self._lookup())

    def _counts(self) -> pd.DataFrame:
        counts = self.dgelist.counts
        if isinstance(counts, pd.DataFrame):
            return counts.astype(float)
        genes = getattr(self.dgelist, "genes", None)
        index = genes.index if isinstance(genes, pd.DataFrame) else None
        return pd.DataFrame(np.asarray(counts, dtype=float), index=index)

    def volcano_rows(self, x: str, y: str) -> pd.DataFrame:
        x, y = str(x), str(y)
        lookup = self._lookup()
        _check_levels(x, y, list(lookup))
        table = _edger_exact_test(self.dgelist, lookup[x], lookup[y])
        fc_col = _pick_column(table, _EDGER_LOG2FC_ALIASES, "edgeR exact test table")
        p_col = _pick_column(table, _EDGER_PVALUE_ALIASES, "edgeR exact test table")
        ids = self._counts().index if isinstance(table.index, pd.RangeIndex) else table.index
        # BH adjustment matches edgeR::topTags(adjust.method = "BH")
        return _finalize_volcano(ids, x, y, table[fc_col], _bh_adjust(table[p_col]))

    def expression_table(self) -> pd.DataFrame:
        counts = self._counts()
        samples = self.dgelist.samples
        lib_size = samples["lib_size"].to_numpy(dtype=float) if "lib_size" in samples else counts.sum(axis=0).to_numpy()
        norm = samples["norm_factors"].to_numpy(dtype=float) if "norm_factors" in samples else 1.0
        cpm = counts / (lib_size * norm) * 1e6
        groups = samples["group"].astype(str).to_numpy()
        means = cpm.T.groupby(groups).mean().T
        return _to_long(means, self.levels())


def _edger_exact_test(dgelist: Any, x: Any, y: Any) -> pd.DataFrame:
    """Exact test of ``y`` against ``x``; returns the ``log2FoldChange``/``pvalue`` table."""
    exactTest = _import_edgepy()
    result = exactTest(dgelist, pair=[x, y])
    return pd.DataFrame(getattr(result, "table", result))


def _bh_adjust(pvalues: Any) -> np.ndarray:
    p = np.asarray(pvalues, dtype=float)
    adjusted = np.full(p.shape, np.nan)
    finite = np.isfinite(p)
    if finite.any():
        adjusted[finite] = false_discovery_control(p[finite], method="bh")
    return adjusted


def make_source(
    data: Any,
    analysis_type: Union[str, AnalysisType, None],
    d_factor: Optional[str] = None,
) -> ResultSource:
    """
    Wrap ``data`` in the adapter matching ``analysis_type``.

    The type is validated before ``data`` is touched.
    """
    kind = AnalysisType.parse(analysis_type)
    if kind is AnalysisType.CUFFDIFF:
        return CuffdiffSource(data)
    if kind is AnalysisType.DESEQ:
        return DeseqSource(data, d_factor)
    return EdgerSource(data)


def read_cuffdiff(path: Union[str, Path]) -> pd.DataFrame:
    """Load a tab-separated Cuffdiff ``*_exp.diff`` file."""
    table = pd.read_csv(Path(path), sep="\t")
    _require_columns(table, ["test_id", "sample_1", "sample_2"], f"Cuffdiff file {path}")
    table["test_id"] = table["test_id"].astype(str)
    return table
