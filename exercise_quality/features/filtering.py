"""
Column pruning for the exercise quality pipeline.

The raw export has 160 columns, but most of them are not usable features:

  - ~100 per-window summary columns (kurtosis_*, max_*, var_*, ...) are only
    filled on the rows that close a window and are missing everywhere else.
  - A few columns are practically constant.
  - The leading index, the subject name and the timestamp/window columns
    describe the collection session, not the movement. A model that sees them
    learns the recording order instead of the exercise quality.

compute_drop_set() works out which columns to remove using the fit subset
only, in three ordered passes (missingness → near-zero variance → identifier
and time columns). The result is an immutable DropSet that is then applied,
unchanged, to the fit, validation and scoring tables with apply_drop_set().
Validation and scoring statistics never influence which columns are kept.

Usage:

    from exercise_quality.features.filtering import (
        FilterConfig, apply_drop_set, compute_drop_set,
    )

    drop_set = compute_drop_set(fit_df, FilterConfig(), label_col="classe")
    fit_df = apply_drop_set(fit_df, drop_set)
    validation_df = apply_drop_set(validation_df, drop_set)
    scoring_df = apply_drop_set(scoring_df, drop_set)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import numpy as np
import pandas as pd

from exercise_quality.errors import ConfigurationError, SchemaMismatchError

logger = logging.getLogger(__name__)

MISSINGNESS = "missingness"
NEAR_ZERO_VARIANCE = "near_zero_variance"
IDENTIFIER = "identifier"

DEFAULT_IDENTIFIER_COLUMNS = (
    "Unnamed: 0",
    "X",
    "index",
    "user_name",
    "subject_id",
    "problem_id",
    "raw_timestamp_part_1",
    "raw_timestamp_part_2",
    "cvtd_timestamp",
    "new_window",
    "num_window",
)
DEFAULT_IDENTIFIER_PATTERNS = ("timestamp", "window")


@dataclass(frozen=True)
class FilterConfig:
    max_missing_fraction: float = 0.0
    freq_ratio_cutoff: float = 95 / 5
    unique_cut: float = 0.1
    identifier_columns: tuple[str, ...] = DEFAULT_IDENTIFIER_COLUMNS
    identifier_patterns: tuple[str, ...] = DEFAULT_IDENTIFIER_PATTERNS

    def __post_init__(self) -> None:
        if not 0.0 <= self.max_missing_fraction < 1.0:
            raise ConfigurationError(
                f"max_missing_fraction must be in [0, 1), got {self.max_missing_fraction}"
            )
        if self.freq_ratio_cutoff <= 1.0:
            raise ConfigurationError(
                f"freq_ratio_cutoff must be greater than 1, got {self.freq_ratio_cutoff}"
            )
        if not 0.0 <= self.unique_cut <= 100.0:
            raise ConfigurationError(
                f"unique_cut is a percentage in [0, 100], got {self.unique_cut}"
            )

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> FilterConfig:
        raw = raw or {}
        return cls(
            max_missing_fraction=float(raw.get("max_missing_fraction", 0.0)),
            freq_ratio_cutoff=float(raw.get("freq_ratio_cutoff", 95 / 5)),
            unique_cut=float(raw.get("unique_cut", 0.1)),
            identifier_columns=tuple(raw.get("identifier_columns", DEFAULT_IDENTIFIER_COLUMNS)),
            identifier_patterns=tuple(raw.get("identifier_patterns", DEFAULT_IDENTIFIER_PATTERNS)),
        )


@dataclass(frozen=True)
class DropSet:
    """
    Columns to remove from every table, and the pass that flagged each one.

    Built once from the fit subset; never re-derived from another table.
    """

    columns: frozenset[str] = frozenset()
    reasons: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def by_reason(self, reason: str) -> list[str]:
        return sorted(c for c, r in self.reasons.items() if r == reason)

    def __contains__(self, column: object) -> bool:
        return column in self.columns

    def __len__(self) -> int:
        return len(self.columns)


def missing_fraction(df: pd.DataFrame) -> pd.Series:
    """Fraction of missing values per column (0.0 for an empty table)."""
    if len(df) == 0:
        return pd.Series(0.0, index=df.columns)
    return df.isna().sum() / len(df)


def near_zero_variance_metrics(
    df: pd.DataFrame,
    freq_ratio_cutoff: float = 95 / 5,
    unique_cut: float = 0.1,
) -> pd.DataFrame:
    """
    Per-column near-zero-variance statistics.

    Columns of the returned frame:
        freq_ratio     — count of the most frequent value divided by the count
                         of the second most frequent (inf for a single value)
        percent_unique — 100 × distinct values / rows
        zero_var       — only one distinct value
        nzv            — freq_ratio > freq_ratio_cutoff OR percent_unique < unique_cut

    Missing values are ignored when counting values.
    """
    rows: list[dict] = []
    n_rows = len(df)

    for col in df.columns:
        counts = df[col].value_counts(dropna=True)
        n_unique = len(counts)

        if n_unique == 0:
            freq_ratio = np.nan
        elif n_unique == 1:
            freq_ratio = np.inf
        else:
            freq_ratio = counts.iloc[0] / counts.iloc[1]

        percent_unique = 100.0 * n_unique / n_rows if n_rows else 0.0

        rows.append({
            "column": col,
            "freq_ratio": float(freq_ratio),
            "percent_unique": percent_unique,
            "zero_var": n_unique <= 1,
            "nzv": bool(
                n_rows > 0
                and (n_unique <= 1 or freq_ratio > freq_ratio_cutoff or percent_unique < unique_cut)
            ),
        })

    metrics = pd.DataFrame(
        rows, columns=["column", "freq_ratio", "percent_unique", "zero_var", "nzv"]
    )
    return metrics.set_index("column")


def identifier_columns(
    columns: Iterable[str],
    names: Iterable[str] = DEFAULT_IDENTIFIER_COLUMNS,
    patterns: Iterable[str] = DEFAULT_IDENTIFIER_PATTERNS,
) -> list[str]:
    """Return the columns that are named identifiers or match an identifier pattern."""
    name_set = set(names)
    compiled = [re.compile(p, re.IGNORECASE) for p in patterns]
    return [
        c for c in columns
        if c in name_set or any(rx.search(str(c)) for rx in compiled)
    ]


def compute_drop_set(
    fit_df: pd.DataFrame,
    cfg: FilterConfig,
    label_col: str | None = "classe",
) -> DropSet:
    """
    Work out which columns to drop, using statistics from the fit subset only.

    Passes run in order, each on the columns the previous one kept:
      1. missingness — missing fraction above cfg.max_missing_fraction
      2. near-zero variance — see near_zero_variance_metrics()
      3. identifier / time — named and pattern-matched session columns,
         dropped regardless of their statistics

    The label column is never dropped.
    """
    reasons: dict[str, str] = {}
    candidates = [c for c in fit_df.columns if c != label_col]

    miss = missing_fraction(fit_df[candidates])
    for col in miss.index[miss > cfg.max_missing_fraction]:
        reasons[col] = MISSINGNESS
    candidates = [c for c in candidates if c not in reasons]
    logger.info("Missingness pass: dropped %d columns", len(reasons))

    nzv = near_zero_variance_metrics(
        fit_df[candidates], cfg.freq_ratio_cutoff, cfg.unique_cut
    )
    n_before = len(reasons)
    for col in nzv.index[nzv["nzv"]]:
        reasons[col] = NEAR_ZERO_VARIANCE
    candidates = [c for c in candidates if c not in reasons]
    logger.info("Near-zero-variance pass: dropped %d columns", len(reasons) - n_before)

    matched = identifier_columns(candidates, cfg.identifier_columns, cfg.identifier_patterns)
    for col in matched:
        reasons[col] = IDENTIFIER
    logger.info("Identifier/time pass: dropped %d columns", len(matched))

    # Named identifiers go in even when the fit subset lacks them, so columns
    # that only the scoring table carries (problem_id) are projected away too.
    for col in cfg.identifier_columns:
        if col != label_col:
            reasons.setdefault(col, IDENTIFIER)

    kept = [c for c in fit_df.columns if c != label_col and c not in reasons]
    logger.info(
        "Drop set: %d of %d columns removed, %d features kept",
        fit_df.shape[1] - len(kept) - (1 if label_col in fit_df.columns else 0),
        fit_df.shape[1],
        len(kept),
    )
    return DropSet(columns=frozenset(reasons), reasons=MappingProxyType(reasons))


def apply_drop_set(df: pd.DataFrame, drop_set: DropSet) -> pd.DataFrame:
    """
    Return a copy of df without the drop-set columns.

    Columns already absent are ignored, so applying the same drop set twice
    gives the same result as applying it once.
    """
    keep = [c for c in df.columns if c not in drop_set.columns]
    return df.loc[:, keep].copy()


def feature_columns(df: pd.DataFrame, label_col: str | None = "classe") -> list[str]:
    return [c for c in df.columns if c != label_col]


def check_schema(
    expected: Iterable[str],
    df: pd.DataFrame,
    label_col: str | None = "classe",
    table_name: str = "table",
) -> None:
    """
    Raise SchemaMismatchError unless df's feature columns equal `expected`.

    Column order is not compared; the model selects its features by name.
    """
    expected_set = set(expected)
    actual_set = set(feature_columns(df, label_col))
    missing = sorted(expected_set - actual_set)
    extra = sorted(actual_set - expected_set)
    if missing or extra:
        raise SchemaMismatchError(
            f"{table_name} feature columns differ from the fit subset: "
            f"missing={missing}, unexpected={extra}"
        )
