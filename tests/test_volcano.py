import warnings

import numpy as np
import pandas as pd
import pytest

import matplotlib.pyplot as plt

from vidger import PlotResult, vs_volcano
from vidger.errors import (
    InvalidAnalysisType,
    InvalidComparison,
    NoMatchingHighlights,
    PartialHighlightWarning,
)
from vidger.volcano import resolve_highlights, save_volcano_plots


def _volcano(table, **kwargs):
    params = dict(analysis_type="cuffdiff", data_return=True)
    params.update(kwargs)
    return vs_volcano("hESC", "iPS", table, **params)


def test_returns_table_and_figure(cuff_table):
    result = _volcano(cuff_table)
    assert isinstance(result, PlotResult)
    table, fig = result
    assert isinstance(fig, plt.Figure)
    assert table is result.data
    # G5 has an infinite fold change and G6 an undefined padj
    assert table["id"].tolist() == ["G1", "G2", "G3", "G4"]
    assert table["category"].tolist() == ["sig_up", "sig_down", "not_sig", "not_sig"]
    for col in ("logFC", "padj", "plot_x", "neg_log10_padj", "color", "shape", "size", "highlighted"):
        assert col in table.columns


def test_axes_cosmetics(cuff_table):
    result = _volcano(
        cuff_table,
        x_lim=(-2, 2),
        lfc=1.5,
        padj=0.02,
        main_title_size=21,
        xaxis_title_size=13,
        yaxis_text_size=7,
    )
    ax = result.figure.axes[0]
    assert ax.get_title() == "iPS vs. hESC"
    assert ax.get_xlim() == pytest.approx((-2.0, 2.0))
    assert ax.title.get_fontsize() == 21
    assert ax.xaxis.label.get_fontsize() == 13
    assert ax.get_legend() is not None

    vertical = sorted(line.get_xdata()[0] for line in ax.lines if line.get_xdata()[0] == line.get_xdata()[1])
    assert pytest.approx(vertical) == [-1.5, 1.5]
    horizontal = [line.get_ydata()[0] for line in ax.lines if line.get_ydata()[0] == line.get_ydata()[1]]
    assert any(np.isclose(h, -np.log10(0.02)) for h in horizontal)

    # clamped points keep their true fold change
    table = result.data
    clipped = table.loc[table["out_of_range"]]
    assert clipped["id"].tolist() == ["G1", "G2"]
    assert clipped["plot_x"].tolist() == [2.0, -2.0]
    assert clipped["logFC"].tolist() == [3.0, -2.5]
    # on the boundary is still in range
    assert not table.set_index("id").loc["G4", "out_of_range"]


def test_toggles(cuff_table):
    ax = _volcano(cuff_table, title=False, legend=False, grid=False).figure.axes[0]
    assert ax.get_title() == ""
    assert ax.get_legend() is None
    assert not ax.spines["top"].get_visible()
    assert not ax.spines["right"].get_visible()

    ax = _volcano(cuff_table, grid=True).figure.axes[0]
    assert ax.spines["top"].get_visible()
    assert any(line.get_visible() for line in ax.get_xgridlines())


def test_count_annotations(synthetic_cuffdiff):
    table, fig = vs_volcano("A", "B", synthetic_cuffdiff, analysis_type="cuffdiff", data_return=True)
    logfc = synthetic_cuffdiff["log2(fold_change)"].to_numpy()
    qval = synthetic_cuffdiff["q_value"].to_numpy()
    up = int(((qval < 0.05) & (logfc > 1)).sum())
    down = int(((qval < 0.05) & (logfc < -1)).sum())

    assert (table["category"] == "sig_up").sum() == up
    texts = {t.get_text() for t in fig.axes[0].texts}
    assert f"{up} up" in texts
    assert f"{down} down" in texts


def test_idempotent_tables(synthetic_cuffdiff):
    first = vs_volcano("A", "B", synthetic_cuffdiff, analysis_type="cuffdiff", data_return=True)
    second = vs_volcano("A", "B", synthetic_cuffdiff, analysis_type="cuffdiff", data_return=True)
    pd.testing.assert_frame_equal(first.data, second.data)


def test_missing_type_fails_before_data_access():
    class Untouchable:
        def __getattr__(self, name):
            raise AssertionError(name)

    with pytest.raises(InvalidAnalysisType):
        vs_volcano("A", "B", Untouchable())


def test_invalid_comparison(cuff_table):
    with pytest.raises(InvalidComparison):
        vs_volcano("hESC", "B", cuff_table, analysis_type="cuffdiff", data_return=True)


def test_highlight_full_overlap(cuff_table):
    with warnings.catch_warnings():
        warnings.simplefilter("error", PartialHighlightWarning)
        table = _volcano(cuff_table, highlight=["G2", "G3"]).data
    assert table.loc[table["highlighted"], "id"].tolist() == ["G2", "G3"]


def test_highlight_labels_drawn(cuff_table):
    ax = _volcano(cuff_table, highlight=["G3"]).figure.axes[0]
    assert "G3" in {t.get_text() for t in ax.texts}


def test_highlight_zero_overlap(cuff_table):
    with pytest.raises(NoMatchingHighlights):
        _volcano(cuff_table, highlight=["nope", "G6"])


def test_highlight_partial_overlap_warns_with_unmatched(cuff_table):
    with pytest.warns(PartialHighlightWarning) as record:
        table = _volcano(cuff_table, highlight=["G1", "missing1", "G4", "missing2"]).data
    partial = [w.message for w in record if isinstance(w.message, PartialHighlightWarning)]
    assert len(partial) == 1
    assert partial[0].unmatched == ["missing1", "missing2"]
    assert table.loc[table["highlighted"], "id"].tolist() == ["G1", "G4"]


def test_partial_highlight_warning_points_at_caller(cuff_table):
    with pytest.warns(PartialHighlightWarning) as record:
        vs_volcano("hESC", "iPS", cuff_table, analysis_type="cuffdiff", highlight=["G1", "absent"], data_return=True)
    partial = [w for w in record if isinstance(w.message, PartialHighlightWarning)]
    assert partial[0].filename == __file__


def test_resolve_highlights_accepts_single_string():
    assert resolve_highlights("a", ["a", "b"]) == ["a"]
    assert resolve_highlights([], ["a"]) == []
    with pytest.raises(TypeError):
        resolve_highlights(5, ["a"])


def test_show_when_data_not_returned(cuff_table, monkeypatch):
    shown = []
    monkeypatch.setattr(plt, "show", lambda *args, **kwargs: shown.append(True))
    assert vs_volcano("hESC", "iPS", cuff_table, analysis_type="cuffdiff") is None
    assert shown == [True]


def test_save_volcano_plots(tmp_path, cuff_table):
    paths = save_volcano_plots(
        cuff_table,
        [("hESC", "iPS"), ("hESC", "Fibro")],
        analysis_type="cuffdiff",
        output_dir=tmp_path / "plots",
        lfc=0.5,
    )
    assert [p.name for p in paths] == ["volcano_iPS_vs_hESC.png", "volcano_Fibro_vs_hESC.png"]
    assert all(p.exists() and p.stat().st_size > 0 for p in paths)
    assert plt.get_fignums() == []


def test_save_volcano_plots_rejects_type_first(tmp_path):
    with pytest.raises(InvalidAnalysisType):
        save_volcano_plots(object(), [("a", "b")], analysis_type="limma", output_dir=tmp_path / "never")
    assert not (tmp_path / "never").exists()


def test_deseq_volcano_through_entry_point(fake_dds, monkeypatch):
    import vidger.sources as sources

    monkeypatch.setattr(
        sources,
        "_deseq_results",
        lambda dds, factor, tested, reference: pd.DataFrame(
            {"log2FoldChange": [1.5, -3.0, 0.1], "padj": [0.01, 0.02, 0.3]},
            index=["FBgn1", "FBgn2", "FBgn3"],
        ),
    )
    table, fig = vs_volcano(
        "treated", "untreated", fake_dds, d_factor="condition", analysis_type="deseq", data_return=True
    )
    assert fig.axes[0].get_title() == "untreated vs. treated"
    assert table["category"].tolist() == ["sig_up", "sig_down", "not_sig"]
