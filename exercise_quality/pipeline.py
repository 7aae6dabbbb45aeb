"""
End-to-end orchestration of the exercise quality report.

Stages run strictly in order and each one finishes before the next starts:

    LOADED → PARTITIONED → FILTERED → TRAINED → VALIDATED → SCORED

Any error aborts the run; there is no partial report. Every random draw
(the partition and the forest's bootstrap samples) is seeded from the
PipelineConfig passed in, so two runs with the same config and inputs give
the same report, and independent runs in one process don't interfere.

Usage:

    from exercise_quality.pipeline import PipelineConfig, run_pipeline

    report = run_pipeline("pml-training.csv", "pml-testing.csv", PipelineConfig())
    for line in report.summary_lines():
        print(line)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import pandas as pd

from exercise_quality.data.loader import LoaderConfig, load_tables
from exercise_quality.data.partition import PartitionConfig, stratified_partition
from exercise_quality.features.filtering import (
    DropSet,
    FilterConfig,
    apply_drop_set,
    check_schema,
    compute_drop_set,
    feature_columns,
)
from exercise_quality.models.evaluation import Evaluation, evaluate, predict
from exercise_quality.models.training import ModelConfig, TrainedModel, train_model

logger = logging.getLogger(__name__)


class Stage(Enum):
    LOADED = "loaded"
    PARTITIONED = "partitioned"
    FILTERED = "filtered"
    TRAINED = "trained"
    VALIDATED = "validated"
    SCORED = "scored"


@dataclass(frozen=True)
class PipelineConfig:
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    model: ModelConfig = field(default_factory=ModelConfig)

    @classmethod
    def from_dict(
        cls,
        pipeline_cfg: dict[str, Any] | None,
        model_cfg: dict[str, Any] | None,
    ) -> PipelineConfig:
        """Build from the parsed configs/pipeline.yaml and configs/model_training.yaml."""
        pipeline_cfg = pipeline_cfg or {}
        model_cfg = model_cfg or {}
        return cls(
            loader=LoaderConfig.from_dict(pipeline_cfg.get("loader")),
            partition=PartitionConfig.from_dict(model_cfg.get("partition")),
            filter=FilterConfig.from_dict(pipeline_cfg.get("filter")),
            model=ModelConfig.from_dict(model_cfg.get("random_forest")),
        )


@dataclass(frozen=True)
class PipelineReport:
    drop_set: DropSet
    features: tuple[str, ...]
    model: TrainedModel
    validation: Evaluation
    predictions: pd.Series
    n_fit: int
    n_validation: int

    def summary_lines(self, top_n: int | None = None) -> list[str]:
        """Plain-text summary of the run, one line per entry."""
        lines = [
            f"Features kept: {len(self.features)} (dropped {len(self.drop_set)})",
            f"Fit / validation rows: {self.n_fit} / {self.n_validation}",
            f"OOB error rate: {100 * self.model.oob_error:.2f}%",
        ]
        if self.model.cv_accuracy_mean is not None:
            lines.append(
                f"CV accuracy: {self.model.cv_accuracy_mean:.4f} ± {self.model.cv_accuracy_std:.4f}"
            )
        low, high = self.validation.accuracy_ci
        lines += [
            f"Validation accuracy: {self.validation.accuracy:.4f} (95% CI {low:.4f}–{high:.4f})",
            f"Expected out-of-sample error: {100 * self.validation.out_of_sample_error:.2f}%",
            "Validation confusion matrix (rows = actual, columns = predicted):",
            *self.validation.confusion.to_string().splitlines(),
            "Top features:",
            *(f"  {name}: {value:.4f}" for name, value in self.model.top_features(top_n).items()),
            "Predictions: " + " ".join(f"{k}={v}" for k, v in self.predictions.items()),
        ]
        return lines


def _enter(stage: Stage) -> None:
    logger.info("Stage: %s", stage.value)


def run_pipeline(
    training_path: Path | str,
    scoring_path: Path | str,
    cfg: PipelineConfig,
) -> PipelineReport:
    """
    Load, partition, filter, train, validate and score.

    Returns:
        PipelineReport. Predictions are indexed by the scoring table's
        problem_id column when it has one, otherwise by row position (1-based).

    Raises:
        FileNotFoundError: If an input file is missing.
        DataFormatError, ConfigurationError, SchemaMismatchError: see
        exercise_quality.errors. All are fatal.
    """
    label_col = cfg.loader.label_column

    training_df, scoring_df = load_tables(training_path, scoring_path, cfg.loader)
    _enter(Stage.LOADED)

    part = stratified_partition(
        training_df, label_col, cfg.partition.fraction, cfg.partition.seed
    )
    _enter(Stage.PARTITIONED)

    drop_set = compute_drop_set(part.fit, cfg.filter, label_col)
    fit_df = apply_drop_set(part.fit, drop_set)
    validation_df = apply_drop_set(part.validation, drop_set)
    scoring_features = apply_drop_set(scoring_df, drop_set).drop(
        columns=[label_col], errors="ignore"
    )

    features = feature_columns(fit_df, label_col)
    check_schema(features, validation_df, label_col, "validation table")
    check_schema(features, scoring_features, label_col, "scoring table")
    _enter(Stage.FILTERED)

    model = train_model(fit_df, cfg.model, label_col)
    _enter(Stage.TRAINED)

    validation = evaluate(model, validation_df)
    _enter(Stage.VALIDATED)

    labels = predict(model, scoring_features)
    if "problem_id" in scoring_df.columns:
        index = pd.Index(scoring_df["problem_id"].tolist(), name="problem_id")
    else:
        index = pd.RangeIndex(1, len(labels) + 1, name="row")
    predictions = pd.Series(labels, index=index, name=label_col, dtype=object)
    _enter(Stage.SCORED)

    return PipelineReport(
        drop_set=drop_set,
        features=tuple(features),
        model=model,
        validation=validation,
        predictions=predictions,
        n_fit=len(fit_df),
        n_validation=len(validation_df),
    )
