"""Exception types raised at the engine boundary."""

from __future__ import annotations

from typing import Dict, Optional


class ShiftgenError(Exception):
    """Base class for all errors raised by shiftgen."""


class InputValidationError(ShiftgenError, ValueError):
    """
    Malformed input rejected before any scoring runs.

    Infeasible inputs never raise this; they are reported as warnings or as a
    failed rest-assignment result instead.
    """

    def __init__(self, field: str, message: str, value: Optional[object] = None):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
        self.value = value

    def to_dict(self) -> Dict[str, object]:
        """Structured form for callers that serialize errors."""
        out: Dict[str, object] = {"error": "input_validation", "field": self.field, "message": self.message}
        if self.value is not None:
            out["value"] = repr(self.value)
        return out


class ConfigError(ShiftgenError, ValueError):
    """Invalid or unreadable configuration file."""
