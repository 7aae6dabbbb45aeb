"""
Tests for exercise_quality.data.loader — CSV loading and format checks.

All tests use synthetic CSVs written by conftest.py fixtures.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from exercise_quality.data.loader import LoaderConfig, load_tables, read_table
from exercise_quality.errors import DataFormatError


def _cfg(training_df: pd.DataFrame, scoring_df: pd.DataFrame) -> LoaderConfig:
    return LoaderConfig(
        training_columns=training_df.shape[1],
        scoring_columns=scoring_df.shape[1],
    )


class TestLoadValidTables:
    def test_shapes_match_source(
        self, training_csv: Path, scoring_csv: Path,
        training_df: pd.DataFrame, scoring_df: pd.DataFrame,
    ) -> None:
        train, score = load_tables(training_csv, scoring_csv, _cfg(training_df, scoring_df))
        assert train.shape == training_df.shape
        assert score.shape == scoring_df.shape

    def test_leading_unnamed_column_is_index_like(
        self, training_csv: Path, scoring_csv: Path,
        training_df: pd.DataFrame, scoring_df: pd.DataFrame,
    ) -> None:
        train, _ = load_tables(training_csv, scoring_csv, _cfg(training_df, scoring_df))
        assert train.columns[0] == "Unnamed: 0"
        assert train["Unnamed: 0"].tolist() == list(range(1, len(train) + 1))

    def test_na_markers_read_as_missing(self, tmp_path: Path) -> None:
        p = tmp_path / "markers.csv"
        p.write_text("a,b,classe\n1,NA,A\n2,#DIV/0!,B\n3,,A\n", encoding="utf-8")
        df = read_table(p)
        assert df["b"].isna().all()
        assert not df["a"].isna().any()

    def test_label_is_string(
        self, training_csv: Path, scoring_csv: Path,
        training_df: pd.DataFrame, scoring_df: pd.DataFrame,
    ) -> None:
        train, _ = load_tables(training_csv, scoring_csv, _cfg(training_df, scoring_df))
        assert set(train["classe"].unique()) == {"A", "B", "C", "D", "E"}

    def test_width_check_can_be_disabled(self, training_csv: Path, scoring_csv: Path) -> None:
        cfg = LoaderConfig(training_columns=None, scoring_columns=None)
        train, score = load_tables(training_csv, scoring_csv, cfg)
        assert "classe" in train.columns
        assert "classe" not in score.columns


class TestFormatErrors:
    def test_missing_label_column(self, tmp_path: Path, scoring_csv: Path) -> None:
        p = tmp_path / "nolabel.csv"
        p.write_text("a,b\n1,2\n3,4\n", encoding="utf-8")
        with pytest.raises(DataFormatError, match="classe"):
            load_tables(p, scoring_csv, LoaderConfig(training_columns=None, scoring_columns=None))

    def test_wrong_column_count(
        self, training_csv: Path, scoring_csv: Path, scoring_df: pd.DataFrame
    ) -> None:
        cfg = LoaderConfig(training_columns=160, scoring_columns=scoring_df.shape[1])
        with pytest.raises(DataFormatError, match="expected 160 columns"):
            load_tables(training_csv, scoring_csv, cfg)

    def test_malformed_row(self, tmp_path: Path) -> None:
        p = tmp_path / "malformed.csv"
        p.write_text("a,b,classe\n1,2,A\n3,4,B,extra,fields\n", encoding="utf-8")
        with pytest.raises(DataFormatError, match="malformed"):
            read_table(p)

    def test_short_row(self, tmp_path: Path) -> None:
        """pandas would pad the short row with NaN; the loader rejects it instead."""
        p = tmp_path / "short.csv"
        p.write_text("a,b,classe\n1,2,A\n3\n", encoding="utf-8")
        with pytest.raises(DataFormatError, match="malformed row 3"):
            read_table(p)

    def test_blank_lines_are_not_rows(self, tmp_path: Path) -> None:
        p = tmp_path / "blank.csv"
        p.write_text("a,b,classe\n1,2,A\n\n3,4,B\n", encoding="utf-8")
        assert len(read_table(p)) == 2

    def test_truncated_scoring_row(
        self, training_csv: Path, scoring_csv: Path,
        training_df: pd.DataFrame, scoring_df: pd.DataFrame,
    ) -> None:
        lines = scoring_csv.read_text(encoding="utf-8").splitlines()
        lines[5] = ",".join(lines[5].split(",")[:3])
        scoring_csv.write_text("\n".join(lines) + "\n", encoding="utf-8")
        with pytest.raises(DataFormatError, match="malformed row 6"):
            load_tables(training_csv, scoring_csv, _cfg(training_df, scoring_df))

    def test_empty_file(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.csv"
        p.write_text("", encoding="utf-8")
        with pytest.raises(DataFormatError, match="empty"):
            read_table(p)

    def test_missing_label_values(self, tmp_path: Path) -> None:
        p = tmp_path / "gaps.csv"
        p.write_text("a,classe\n1,A\n2,NA\n", encoding="utf-8")
        with pytest.raises(DataFormatError, match="missing values"):
            load_tables(p, p, LoaderConfig(training_columns=None, scoring_columns=None))


class TestMissingFile:
    def test_raises_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_table(tmp_path / "does_not_exist.csv")
