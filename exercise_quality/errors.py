"""
Error types raised by the Exercise Quality pipeline.

Every error is fatal to a run: the stages are a single deterministic batch,
so nothing is retried and no partial report is produced.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class DataFormatError(PipelineError):
    """An input table is malformed, or is missing an expected column or the label."""


class ConfigurationError(PipelineError):
    """A configuration value is out of range (e.g. a split fraction outside (0, 1))."""


class SchemaMismatchError(PipelineError):
    """A table's columns don't match the feature schema the model was trained on."""
