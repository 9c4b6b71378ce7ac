#!/usr/bin/env python3
"""
Error taxonomy for the mood scoring engine.

Structural preconditions (no baseline, too little data, no matched pairs,
unqualified validator) are raised to the caller. Data-quality problems inside
a single conversation are never raised; the analyzer degrades to a neutral,
low-confidence result instead.
"""


class MoodEngineError(Exception):
    """Base class for all engine errors."""


class InsufficientDataError(MoodEngineError, ValueError):
    """Too few scored conversations to establish or update a baseline."""

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class NoBaselineError(MoodEngineError, LookupError):
    """Deviation or update requested before a baseline was established."""

    def __init__(self, subject_id: str):
        super().__init__(f"No baseline established for subject '{subject_id}'")
        self.subject_id = subject_id


class NoMatchedPairsError(MoodEngineError, ValueError):
    """Validation input has no overlapping conversation ids."""


class InvalidCredentialsError(MoodEngineError, ValueError):
    """Validator fails the experience or specialization gate."""


class CalibrationError(MoodEngineError, RuntimeError):
    """A parameter adjustment could not be applied or reverted."""
