"""
Random forest training for the exercise quality classifier.

The forest itself is scikit-learn's RandomForestClassifier; this module is
about feeding it the right data and configuration and collecting the
training-time diagnostics the report needs:

  - out-of-bag (OOB) error rate and OOB confusion matrix — each tree is scored
    on the bootstrap rows it never saw, so no held-out data is touched
  - optionally, a stratified k-fold accuracy estimate on the fit subset
  - the mean-decrease-in-impurity feature importance ranking

Usage:

    from exercise_quality.models.training import ModelConfig, train_model

    model = train_model(fit_df, ModelConfig(ensemble_size=500, seed=12345))
    print(model.oob_error, model.top_features(10))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import StratifiedKFold, cross_val_score

from exercise_quality.errors import ConfigurationError, DataFormatError

logger = logging.getLogger(__name__)

RESAMPLING_METHODS = ("oob", "cv")


@dataclass(frozen=True)
class ModelConfig:
    ensemble_size: int = 500
    resampling_method: str = "oob"
    resampling_iterations: int = 5
    seed: int = 12345
    n_jobs: int = 1
    top_n_features: int = 20

    def __post_init__(self) -> None:
        if self.ensemble_size <= 0:
            raise ConfigurationError(
                f"ensemble_size must be positive, got {self.ensemble_size}"
            )
        if self.resampling_method not in RESAMPLING_METHODS:
            raise ConfigurationError(
                f"resampling_method must be one of {RESAMPLING_METHODS}, "
                f"got {self.resampling_method!r}"
            )
        if self.resampling_method == "cv" and self.resampling_iterations < 2:
            raise ConfigurationError(
                f"cv resampling needs at least 2 folds, got {self.resampling_iterations}"
            )
        if self.top_n_features <= 0:
            raise ConfigurationError(
                f"top_n_features must be positive, got {self.top_n_features}"
            )

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> ModelConfig:
        raw = raw or {}
        return cls(
            ensemble_size=int(raw.get("ensemble_size", 500)),
            resampling_method=str(raw.get("resampling_method", "oob")),
            resampling_iterations=int(raw.get("resampling_iterations", 5)),
            seed=int(raw.get("seed", 12345)),
            n_jobs=int(raw.get("n_jobs", 1)),
            top_n_features=int(raw.get("top_n_features", 20)),
        )


@dataclass(frozen=True)
class TrainedModel:
    """A fitted forest plus the diagnostics computed while training it."""

    estimator: RandomForestClassifier
    features: tuple[str, ...]
    classes: tuple[str, ...]
    label_column: str
    config: ModelConfig
    oob_error: float
    oob_confusion: pd.DataFrame
    feature_importance: pd.Series
    cv_accuracy_mean: float | None = None
    cv_accuracy_std: float | None = None

    def top_features(self, n: int | None = None) -> pd.Series:
        return self.feature_importance.head(self.config.top_n_features if n is None else n)


def _split_features(
    df: pd.DataFrame, label_col: str
) -> tuple[pd.DataFrame, pd.Series]:
    if label_col not in df.columns:
        raise DataFormatError(f"Label column '{label_col}' not found in fit subset")

    X = df.drop(columns=[label_col])
    y = df[label_col].astype(str)

    non_numeric = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
    if non_numeric:
        raise DataFormatError(
            f"Non-numeric feature columns left after filtering: {non_numeric}"
        )
    if X.shape[1] == 0:
        raise DataFormatError("No feature columns left after filtering")
    if y.nunique() < 2:
        raise DataFormatError(
            f"Need at least two classes to train, found {sorted(y.unique())}"
        )
    return X, y


def _oob_confusion(
    forest: RandomForestClassifier, y: pd.Series
) -> pd.DataFrame:
    """
    Confusion matrix of the OOB votes (rows = actual, columns = predicted).

    Rows that were in every tree's bootstrap sample have no OOB vote and are
    left out.
    """
    classes = [str(c) for c in forest.classes_]
    decision = forest.oob_decision_function_
    has_vote = ~np.isnan(decision).any(axis=1) & (np.nansum(decision, axis=1) > 0)
    oob_pred = forest.classes_[np.argmax(np.nan_to_num(decision[has_vote]), axis=1)]
    cm = confusion_matrix(y.to_numpy()[has_vote], oob_pred, labels=forest.classes_)
    return pd.DataFrame(cm, index=pd.Index(classes, name="actual"),
                        columns=pd.Index(classes, name="predicted"))


def train_model(
    fit_df: pd.DataFrame,
    cfg: ModelConfig,
    label_col: str = "classe",
) -> TrainedModel:
    """
    Fit a random forest on the filtered fit subset.

    Args:
        fit_df: Filtered fit subset — numeric feature columns plus the label.
        cfg: Forest size, resampling scheme and seed.
        label_col: Name of the label column.

    Returns:
        TrainedModel with the fitted estimator, OOB error and confusion matrix,
        the cross-validated accuracy when cfg.resampling_method == "cv", and
        the feature importance ranking (highest first).

    Raises:
        DataFormatError: If the label is missing, features aren't numeric, or
                         the fit subset has fewer than two classes.
    """
    X, y = _split_features(fit_df, label_col)
    logger.info(
        "Training random forest: %d rows × %d features, %d trees, seed=%d",
        X.shape[0], X.shape[1], cfg.ensemble_size, cfg.seed,
    )

    cv_mean = cv_std = None
    if cfg.resampling_method == "cv":
        kf = StratifiedKFold(
            n_splits=cfg.resampling_iterations, shuffle=True, random_state=cfg.seed
        )
        scores = cross_val_score(
            RandomForestClassifier(
                n_estimators=cfg.ensemble_size, random_state=cfg.seed, n_jobs=cfg.n_jobs
            ),
            X, y, cv=kf, scoring="accuracy",
        )
        cv_mean, cv_std = float(np.mean(scores)), float(np.std(scores))
        for fold, score in enumerate(scores, start=1):
            logger.info("  Fold %d/%d → accuracy=%.4f", fold, cfg.resampling_iterations, score)
        logger.info("CV accuracy: %.4f ± %.4f", cv_mean, cv_std)

    forest = RandomForestClassifier(
        n_estimators=cfg.ensemble_size,
        bootstrap=True,
        oob_score=True,
        random_state=cfg.seed,
        n_jobs=cfg.n_jobs,
    )
    forest.fit(X, y)

    oob_error = 1.0 - float(forest.oob_score_)
    importance = (
        pd.Series(forest.feature_importances_, index=list(X.columns), name="importance")
        .sort_values(ascending=False, kind="mergesort")
    )
    logger.info("OOB error rate: %.2f%%", 100 * oob_error)

    return TrainedModel(
        estimator=forest,
        features=tuple(X.columns),
        classes=tuple(str(c) for c in forest.classes_),
        label_column=label_col,
        config=cfg,
        oob_error=oob_error,
        oob_confusion=_oob_confusion(forest, y),
        feature_importance=importance,
        cv_accuracy_mean=cv_mean,
        cv_accuracy_std=cv_std,
    )
