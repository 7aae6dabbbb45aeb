"""
Shared pytest fixtures for the Exercise Quality test suite.

All fixtures are synthetic — no real dataset files required. The frames
mimic the layout of the weight-lifting export (index, subject, timestamp and
window columns, a block of mostly-missing summary columns, a constant column)
with a handful of sensor columns whose values depend on the class, so a small
forest separates the classes easily.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from exercise_quality.data.loader import LoaderConfig
from exercise_quality.data.partition import PartitionConfig
from exercise_quality.features.filtering import FilterConfig
from exercise_quality.models.training import ModelConfig
from exercise_quality.pipeline import PipelineConfig

CLASS_SIZES = {"A": 150, "B": 100, "C": 90, "D": 80, "E": 80}
CLASS_OFFSETS = {"A": 0.0, "B": 10.0, "C": 20.0, "D": 30.0, "E": 40.0}
SENSOR_COLUMNS = ["roll_belt", "pitch_belt", "yaw_belt", "gyros_arm_x", "accel_dumbbell_z"]
SUMMARY_COLUMNS = ["kurtosis_roll_belt", "max_roll_belt", "var_accel_arm"]
SUBJECTS = ["adelmo", "carlitos", "charles", "eurico", "jeremy", "pedro"]


def _sensor_rows(labels: list[str], rng: np.random.Generator) -> pd.DataFrame:
    n = len(labels)
    offsets = np.array([CLASS_OFFSETS[label] for label in labels])
    df = pd.DataFrame({
        "user_name": rng.choice(SUBJECTS, size=n),
        "raw_timestamp_part_1": 1322489729 + np.arange(n),
        "raw_timestamp_part_2": rng.integers(0, 999_999, size=n),
        "cvtd_timestamp": "28/11/2011 14:15",
        "new_window": np.where(np.arange(n) % 50 == 49, "yes", "no"),
        "num_window": np.arange(n) // 24 + 1,
    })
    for i, col in enumerate(SENSOR_COLUMNS):
        df[col] = offsets * (i + 1) + rng.normal(0.0, 1.0, size=n)
    # Per-window summaries: only filled on the rows that close a window
    closes_window = df["new_window"] == "yes"
    for col in SUMMARY_COLUMNS:
        df[col] = np.where(closes_window, rng.normal(0.0, 1.0, size=n), np.nan)
    df["amplitude_yaw_belt"] = 0.0
    return df


@pytest.fixture()
def training_df() -> pd.DataFrame:
    """
    500 labelled rows, classes A–E with uneven sizes (150/100/90/80/80).

    Columns: "Unnamed: 0" (1..N), the session columns, five class-dependent
    sensor columns, three mostly-missing summary columns, one constant column
    and the label `classe`. Rows are grouped by class, the way the raw export is.
    """
    rng = np.random.default_rng(7)
    labels = [cls for cls, n in CLASS_SIZES.items() for _ in range(n)]
    df = _sensor_rows(labels, rng)
    df.insert(0, "Unnamed: 0", np.arange(1, len(df) + 1))
    df["classe"] = labels
    return df


@pytest.fixture()
def scoring_df() -> pd.DataFrame:
    """20 unlabelled rows, four per class, with problem_id 1..20 instead of classe."""
    rng = np.random.default_rng(11)
    labels = [cls for cls in CLASS_OFFSETS for _ in range(4)]
    df = _sensor_rows(labels, rng)
    df.insert(0, "Unnamed: 0", np.arange(1, len(df) + 1))
    df["problem_id"] = np.arange(1, len(df) + 1)
    return df


@pytest.fixture()
def scoring_truth() -> list[str]:
    """True classes of the scoring_df rows, in row order."""
    return [cls for cls in CLASS_OFFSETS for _ in range(4)]


def _write_like_export(df: pd.DataFrame, path: Path) -> Path:
    """Write df the way the raw export looks: unnamed leading column, NA markers."""
    out = df.drop(columns=["Unnamed: 0"]).copy()
    out.index = pd.RangeIndex(1, len(out) + 1)
    out.to_csv(path, na_rep="NA")
    return path


@pytest.fixture()
def training_csv(tmp_path: Path, training_df: pd.DataFrame) -> Path:
    return _write_like_export(training_df, tmp_path / "pml-training.csv")


@pytest.fixture()
def scoring_csv(tmp_path: Path, scoring_df: pd.DataFrame) -> Path:
    return _write_like_export(scoring_df, tmp_path / "pml-testing.csv")


@pytest.fixture()
def small_model_cfg() -> ModelConfig:
    """A forest small enough to keep the test suite fast."""
    return ModelConfig(ensemble_size=30, resampling_method="oob", seed=42)


@pytest.fixture()
def pipeline_cfg(
    training_df: pd.DataFrame,
    scoring_df: pd.DataFrame,
    small_model_cfg: ModelConfig,
) -> PipelineConfig:
    return PipelineConfig(
        loader=LoaderConfig(
            training_columns=training_df.shape[1],
            scoring_columns=scoring_df.shape[1],
        ),
        partition=PartitionConfig(fraction=0.7, seed=12345),
        filter=FilterConfig(),
        model=small_model_cfg,
    )
