"""
Loader for the weight-lifting exercise CSV exports.

The dataset ships as two comma-separated files with a header row:

  pml-training.csv — ~19,622 labelled rows × 160 columns (label: classe)
  pml-testing.csv  — 20 unlabelled rows × 159 columns (problem_id instead of classe)

The raw export marks missing readings three different ways ("NA", empty
fields and spreadsheet "#DIV/0!" errors), so all three are read as NaN.

Usage:

    from exercise_quality.data.loader import LoaderConfig, load_tables

    training_df, scoring_df = load_tables(
        "data/raw/pml-training.csv",
        "data/raw/pml-testing.csv",
        LoaderConfig(),
    )
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from exercise_quality.errors import DataFormatError

logger = logging.getLogger(__name__)

DEFAULT_NA_VALUES = ("NA", "", "#DIV/0!")


@dataclass(frozen=True)
class LoaderConfig:
    label_column: str = "classe"
    na_values: tuple[str, ...] = DEFAULT_NA_VALUES
    training_columns: int | None = 160
    scoring_columns: int | None = 159

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> LoaderConfig:
        raw = raw or {}
        return cls(
            label_column=raw.get("label_column", "classe"),
            na_values=tuple(raw.get("na_values", DEFAULT_NA_VALUES)),
            training_columns=raw.get("training_columns", 160),
            scoring_columns=raw.get("scoring_columns", 159),
        )


def _check_row_widths(path: Path) -> None:
    """
    Raise DataFormatError on the first row whose field count differs from the header's.

    pandas pads short rows with NaN instead of rejecting them, so widths are
    checked up front. Blank lines are skipped, as pandas skips them.
    """
    with path.open(newline="", encoding="utf-8", errors="replace") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None:
            return
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise DataFormatError(
                    f"{path.name}: malformed row {reader.line_num} "
                    f"(got {len(row)} fields, header has {len(header)})"
                )


def read_table(
    path: Path | str,
    na_values: tuple[str, ...] = DEFAULT_NA_VALUES,
    expected_columns: int | None = None,
) -> pd.DataFrame:
    """
    Read one CSV table with a header row.

    Args:
        path: Path to the CSV file.
        na_values: Strings to treat as missing. pandas' default NA markers
                   are switched off, so only these count.
        expected_columns: Declared column count, or None to skip the check.

    Returns:
        The table as a DataFrame, one row per observation, in file order.

    Raises:
        FileNotFoundError: If the path does not exist.
        DataFormatError: If the file is empty, a row's field count differs
                         from the header's, the file can't be parsed, or its
                         column count differs from expected_columns.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")

    _check_row_widths(path)

    try:
        df = pd.read_csv(
            path,
            na_values=list(na_values),
            keep_default_na=False,
            low_memory=False,
        )
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"{path.name}: file is empty") from e
    except pd.errors.ParserError as e:
        raise DataFormatError(f"{path.name}: malformed row ({e})") from e

    if expected_columns is not None and df.shape[1] != expected_columns:
        raise DataFormatError(
            f"{path.name}: expected {expected_columns} columns, found {df.shape[1]}"
        )

    logger.info("%s: loaded %d rows × %d columns", path.name, df.shape[0], df.shape[1])
    return df


def load_tables(
    training_path: Path | str,
    scoring_path: Path | str,
    cfg: LoaderConfig,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the labelled training table and the unlabelled scoring table.

    Returns:
        (training_df, scoring_df)

    Raises:
        FileNotFoundError: If either path does not exist.
        DataFormatError: If either table is malformed or has the wrong width,
                         or the training table has no label column.
    """
    training_df = read_table(training_path, cfg.na_values, cfg.training_columns)
    if cfg.label_column not in training_df.columns:
        raise DataFormatError(
            f"Label column '{cfg.label_column}' not found in training table "
            f"{Path(training_path).name}"
        )
    if training_df[cfg.label_column].isna().any():
        raise DataFormatError(
            f"Label column '{cfg.label_column}' has "
            f"{int(training_df[cfg.label_column].isna().sum())} missing values"
        )
    training_df[cfg.label_column] = training_df[cfg.label_column].astype(str)

    scoring_df = read_table(scoring_path, cfg.na_values, cfg.scoring_columns)
    if cfg.label_column in scoring_df.columns:
        logger.warning(
            "Scoring table carries a '%s' column; it is ignored for prediction",
            cfg.label_column,
        )

    logger.info(
        "Class counts in training table: %s",
        training_df[cfg.label_column].value_counts().sort_index().to_dict(),
    )
    return training_df, scoring_df
