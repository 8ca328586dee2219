from types import SimpleNamespace

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


@pytest.fixture
def cuff_table() -> pd.DataFrame:
    """Two Cuffdiff comparisons (hESC->iPS, hESC->Fibro) over six genes."""
    ids = [f"G{i}" for i in range(1, 7)]
    ips = pd.DataFrame(
        {
            "test_id": ids,
            "gene_id": ids,
            "sample_1": "hESC",
            "sample_2": "iPS",
            "status": "OK",
            "value_1": [1.0, 8.0, 3.0, 2.0, 0.0, 5.0],
            "value_2": [8.0, 1.0, 4.0, 8.0, 4.0, 4.0],
            "log2(fold_change)": [3.0, -2.5, 0.5, 2.0, np.inf, -0.2],
            "q_value": [0.01, 0.001, 0.01, 0.5, 0.02, np.nan],
        }
    )
    fibro = pd.DataFrame(
        {
            "test_id": ids,
            "gene_id": ids,
            "sample_1": "hESC",
            "sample_2": "Fibro",
            "status": "OK",
            "value_1": [1.0, 8.0, 3.0, 2.0, 0.0, 5.0],
            "value_2": [0.5, 9.0, 99.0, 2.0, 1.0, 5.0],
            "log2(fold_change)": [-1.0, 0.17, 5.0, 0.0, np.inf, 0.0],
            "q_value": [0.04, 0.9, 0.001, 1.0, 0.3, 1.0],
        }
    )
    return pd.concat([ips, fibro], ignore_index=True)


def make_synthetic_cuffdiff(n: int = 1000, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    return pd.DataFrame(
        {
            "test_id": [f"GENE{i}" for i in range(n)],
            "sample_1": "A",
            "sample_2": "B",
            "value_1": rng.uniform(0, 100, size=n),
            "value_2": rng.uniform(0, 100, size=n),
            "log2(fold_change)": rng.normal(0.0, 2.0, size=n),
            "q_value": rng.uniform(0.0, 1.0, size=n),
        }
    )


@pytest.fixture
def synthetic_cuffdiff() -> pd.DataFrame:
    return make_synthetic_cuffdiff()


@pytest.fixture
def fake_dds():
    """Minimal stand-in for a fitted pydeseq2 DeseqDataSet (samples x genes)."""
    counts = np.array(
        [
            [10.0, 0.0, 100.0],
            [20.0, 10.0, 100.0],
            [30.0, 40.0, 100.0],
            [50.0, 40.0, 100.0],
        ]
    )
    size_factors = np.array([0.5, 1.0, 1.0, 2.0])
    obs = pd.DataFrame(
        {"condition": ["treated", "treated", "untreated", "untreated"]},
        index=["s1", "s2", "s3", "s4"],
    )
    return SimpleNamespace(
        obs=obs,
        X=counts,
        layers={"normed_counts": counts / size_factors[:, None]},
        obs_names=obs.index,
        var_names=pd.Index(["FBgn1", "FBgn2", "FBgn3"]),
    )


@pytest.fixture
def fake_dgelist():
    """Minimal stand-in for an edgeR DGEList (genes x samples)."""
    counts = pd.DataFrame(
        [[10, 30, 5, 5], [0, 0, 50, 150], [100, 100, 100, 100]],
        index=["ENSG1", "ENSG2", "ENSG3"],
        columns=["w1", "w2", "m1", "m2"],
    )
    samples = pd.DataFrame(
        {
            "group": ["WM", "WM", "MM", "MM"],
            "lib_size": [110.0, 130.0, 155.0, 255.0],
            "norm_factors": [1.0, 1.0, 1.0, 1.0],
        },
        index=counts.columns,
    )
    return SimpleNamespace(counts=counts, samples=samples)
