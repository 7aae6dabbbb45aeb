"""
Evaluation and prediction for a trained exercise quality model.

evaluate() scores a labelled table (the validation subset) and returns the
confusion matrix — rows are actual classes, columns are predicted classes —
together with accuracy = trace / total and a few supporting statistics.

predict() labels an unlabelled table (the scoring set), one label per row,
in row order.

Both select the model's features by name and raise SchemaMismatchError if any
are missing, so a table with drifted columns can never be silently misaligned.
A missing value in any model feature raises DataFormatError rather than being
scored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.stats import binomtest
from sklearn.metrics import cohen_kappa_score, confusion_matrix

from exercise_quality.errors import DataFormatError, SchemaMismatchError
from exercise_quality.models.training import TrainedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    confusion: pd.DataFrame
    accuracy: float
    kappa: float
    accuracy_ci: tuple[float, float]
    per_class: pd.DataFrame
    n_rows: int

    @property
    def out_of_sample_error(self) -> float:
        return 1.0 - self.accuracy


def _model_inputs(model: TrainedModel, df: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in model.features if c not in df.columns]
    if missing:
        raise SchemaMismatchError(
            f"Table is missing {len(missing)} model feature(s): {missing}"
        )
    X = df.loc[:, list(model.features)]
    gaps = X.isna()
    if gaps.to_numpy().any():
        bad_rows = X.index[gaps.any(axis=1)].tolist()
        bad_cols = X.columns[gaps.any(axis=0)].tolist()
        raise DataFormatError(
            f"{len(bad_rows)} row(s) have missing model features: "
            f"rows={bad_rows[:10]}, columns={bad_cols}"
        )
    return X


def predict(model: TrainedModel, df: pd.DataFrame) -> list[str]:
    """
    Predict one label per row of df, in row order.

    Extra columns (including a label column, if present) are ignored.

    Raises:
        SchemaMismatchError: If df lacks any feature the model was trained on.
        DataFormatError: If any model feature has a missing value.
    """
    X = _model_inputs(model, df)
    if X.empty:
        return []
    return [str(label) for label in model.estimator.predict(X)]


def _per_class_stats(cm: pd.DataFrame) -> pd.DataFrame:
    """Sensitivity and specificity for each class, one-vs-rest."""
    values = cm.to_numpy()
    total = values.sum()
    tp = np.diag(values)
    actual = values.sum(axis=1)
    predicted = values.sum(axis=0)
    fn = actual - tp
    fp = predicted - tp
    tn = total - tp - fn - fp
    with np.errstate(divide="ignore", invalid="ignore"):
        sensitivity = np.where(actual > 0, tp / actual, np.nan)
        specificity = np.where(tn + fp > 0, tn / (tn + fp), np.nan)
    return pd.DataFrame(
        {"support": actual, "sensitivity": sensitivity, "specificity": specificity},
        index=cm.index,
    )


def evaluate(model: TrainedModel, df: pd.DataFrame) -> Evaluation:
    """
    Compare the model's predictions on df with df's labels.

    Returns:
        Evaluation whose confusion matrix rows sum to the per-class row counts
        of df, and whose accuracy equals trace / total exactly. The accuracy
        interval is the exact (Clopper–Pearson) 95% binomial interval.

    Raises:
        DataFormatError: If df has no label column or no rows, or a model
                         feature has a missing value.
        SchemaMismatchError: If df lacks any model feature.
    """
    label_col = model.label_column
    if label_col not in df.columns:
        raise DataFormatError(f"Label column '{label_col}' not found; use predict() instead")
    if df.empty:
        raise DataFormatError("Cannot evaluate on an empty table")

    actual = df[label_col].astype(str).tolist()
    predicted = predict(model, df)

    labels = sorted(set(model.classes) | set(actual))
    cm_values = confusion_matrix(actual, predicted, labels=labels)
    cm = pd.DataFrame(
        cm_values,
        index=pd.Index(labels, name="actual"),
        columns=pd.Index(labels, name="predicted"),
    )

    total = int(cm_values.sum())
    correct = int(np.trace(cm_values))
    accuracy = correct / total

    ci = binomtest(correct, total).proportion_ci(confidence_level=0.95, method="exact")
    kappa = float(cohen_kappa_score(actual, predicted, labels=labels))

    logger.info(
        "Evaluated %d rows: accuracy=%.4f (95%% CI %.4f–%.4f), kappa=%.4f",
        total, accuracy, ci.low, ci.high, kappa,
    )
    return Evaluation(
        confusion=cm,
        accuracy=accuracy,
        kappa=kappa,
        accuracy_ci=(float(ci.low), float(ci.high)),
        per_class=_per_class_stats(cm),
        n_rows=total,
    )
