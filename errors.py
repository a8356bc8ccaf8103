"""Exception types shared across the pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for pipeline errors."""


class ConfigurationError(PipelineError):
    """Required credentials or settings are missing. Fatal for a run."""


class NetworkError(PipelineError):
    """Timeout, transport failure, or non-2xx response from a remote service."""


class ValidationError(PipelineError):
    """A stage did not receive enough usable input to continue."""


class ConflictError(PipelineError):
    """The article store rejected a record with a duplicate key."""
