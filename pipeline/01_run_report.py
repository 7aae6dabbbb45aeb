"""
01_run_report.py — Train, validate and score the exercise quality classifier.

Loads the labelled training export and the 20-row scoring export, prunes
unusable columns, fits the random forest, reports the OOB and validation
accuracy, and predicts the exercise class for every scoring row.

Usage:
    python -m pipeline.01_run_report

Input:
    data/raw/pml-training.csv
    data/raw/pml-testing.csv
Output:
    Report written to the log (stdout). Nothing is persisted.
"""

from __future__ import annotations

import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from exercise_quality.config import load_config  # noqa: E402
from exercise_quality.errors import PipelineError  # noqa: E402
from exercise_quality.logging_utils import setup_script_logging  # noqa: E402
from exercise_quality.pipeline import PipelineConfig, run_pipeline  # noqa: E402

logger = setup_script_logging(__name__)

_cfg = load_config("pipeline")
_mcfg = load_config("model_training")

TRAINING_CSV: str = _cfg["data"]["training_csv"]
SCORING_CSV: str = _cfg["data"]["scoring_csv"]


def main() -> int:
    logger.info("Exercise quality report")

    try:
        config = PipelineConfig.from_dict(_cfg, _mcfg)
        report = run_pipeline(TRAINING_CSV, SCORING_CSV, config)
    except FileNotFoundError as e:
        logger.error("%s — download the dataset into data/raw/ first.", e)
        return 1
    except PipelineError as e:
        logger.error("Run aborted: %s: %s", type(e).__name__, e)
        return 1

    for line in report.summary_lines():
        logger.info(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
