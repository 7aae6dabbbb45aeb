"""
Stratified fit / validation partitioning.

Rows are sampled independently inside each label class and the per-class
picks are concatenated, so every class keeps roughly the requested share in
both subsets. The random generator is created from an explicit seed on every
call; no global RNG state is read or written.

Usage:

    from exercise_quality.data.partition import stratified_partition

    part = stratified_partition(training_df, "classe", p=0.7, seed=12345)
    fit_df, validation_df = part.fit, part.validation
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from exercise_quality.errors import ConfigurationError, DataFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionConfig:
    fraction: float = 0.7
    seed: int = 12345

    def __post_init__(self) -> None:
        if not 0.0 < self.fraction < 1.0:
            raise ConfigurationError(
                f"Partition fraction must be in (0, 1), got {self.fraction}"
            )

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> PartitionConfig:
        raw = raw or {}
        return cls(fraction=float(raw.get("fraction", 0.7)), seed=int(raw.get("seed", 12345)))


@dataclass(frozen=True)
class Partition:
    fit: pd.DataFrame
    validation: pd.DataFrame
    seed: int
    fraction: float


def stratified_partition_indices(
    labels: pd.Series,
    p: float,
    seed: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Return (fit_positions, validation_positions) as sorted integer positions.

    For each class, ceil(p * n_class) positions are drawn without replacement
    for the fit subset; the remainder goes to validation. Classes are visited
    in sorted order so the draw only depends on the seed and the labels.
    A class too small to split may leave one side empty for that class.
    """
    if not 0.0 < p < 1.0:
        raise ConfigurationError(f"Partition fraction must be in (0, 1), got {p}")

    rng = np.random.default_rng(seed)
    values = labels.to_numpy()
    fit_parts: list[np.ndarray] = []

    for cls in sorted(pd.unique(values)):
        positions = np.flatnonzero(values == cls)
        n_fit = min(len(positions), math.ceil(p * len(positions)))
        fit_parts.append(rng.choice(positions, size=n_fit, replace=False))

    fit_pos = np.sort(np.concatenate(fit_parts)) if fit_parts else np.array([], dtype=int)
    mask = np.ones(len(values), dtype=bool)
    mask[fit_pos] = False
    return fit_pos, np.flatnonzero(mask)


def stratified_partition(
    df: pd.DataFrame,
    label_col: str,
    p: float,
    seed: int,
) -> Partition:
    """
    Split a labelled table into disjoint fit and validation subsets.

    Both subsets keep the input's row order and index labels; their union is
    the full input. Calling this twice with the same table and seed gives the
    same partition.

    Raises:
        DataFormatError: If label_col is not a column of df.
        ConfigurationError: If p is not strictly between 0 and 1.
    """
    if label_col not in df.columns:
        raise DataFormatError(f"Label column '{label_col}' not found")

    fit_pos, val_pos = stratified_partition_indices(df[label_col], p, seed)
    fit_df = df.iloc[fit_pos].copy()
    validation_df = df.iloc[val_pos].copy()

    logger.info(
        "Partitioned %d rows → fit=%d, validation=%d (p=%.2f, seed=%d)",
        len(df), len(fit_df), len(validation_df), p, seed,
    )
    return Partition(fit=fit_df, validation=validation_df, seed=seed, fraction=p)
