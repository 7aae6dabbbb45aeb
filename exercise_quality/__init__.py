"""
Exercise Quality — shared Python package.

Contains the core logic for the weight-lifting exercise quality report:
  - exercise_quality.data.loader          — training / scoring CSV loading
  - exercise_quality.data.partition       — stratified fit / validation split
  - exercise_quality.features.filtering   — missingness, near-zero-variance and identifier column pruning
  - exercise_quality.models.training      — random forest fit with out-of-bag scoring
  - exercise_quality.models.evaluation    — confusion matrix, accuracy and prediction
  - exercise_quality.pipeline             — end-to-end stage orchestration
  - exercise_quality.config               — YAML config loading
  - exercise_quality.errors               — pipeline error types
  - exercise_quality.logging_utils        — project-wide logger factory
"""
