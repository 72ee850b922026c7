# flowengine/utils/errors.py
from __future__ import annotations

from typing import Iterable


class FlowEngineError(RuntimeError):
    """
    Base class for every error raised by the wrapper / engine contract.
    """


class MissingInputError(FlowEngineError):
    """
    A required field is absent from the stage sub-record.

    Fatal to the current stage call, never retried.
    """

    def __init__(self, stage: str, field: str, wrapper: str | None = None):
        self.stage = stage
        self.field = field
        self.wrapper = wrapper
        where = wrapper or stage
        super().__init__(
            f"[{where}] Missing required input: {stage}.{field}"
        )


class ConfigurationError(FlowEngineError):
    """
    Requested data variant / engine alias / export format is not available.
    """


class ValidationError(FlowEngineError):
    """
    Domain-specific invariant violation (e.g. non-binary protected attribute).
    """

    def __init__(self, stage: str, fields: Iterable[str], reason: str):
        self.stage = stage
        self.fields = list(fields)
        self.reason = reason
        super().__init__(
            f"[{stage}] {reason}: {', '.join(self.fields)}"
        )


class ExternalEngineError(FlowEngineError):
    """
    Computation or I/O failure inside an engine whose wrapper degrades
    to a failure envelope instead of propagating.
    """
