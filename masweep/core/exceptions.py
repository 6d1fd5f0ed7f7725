"""masweep.core.exceptions

Errors are part of the interface.

Everything a sweep can survive derives from SweepError. Anything else is a bug
and propagates.
"""

from __future__ import annotations

from masweep.core.types import RunOutput


class MasweepError(Exception):
    """Base exception for masweep."""


class ConfigError(MasweepError):
    """Configuration is missing, invalid, or inconsistent."""


class SweepError(MasweepError):
    """A single combination failed. The sweep carries on."""


class ConfigWriteError(SweepError):
    """Engine config artifact could not be written."""


class ProcessLaunchError(SweepError):
    """Engine binary missing, not executable, or failed to spawn."""


class ProcessRuntimeError(SweepError):
    """Engine exited non-zero."""

    def __init__(self, message: str, output: RunOutput) -> None:
        super().__init__(message)
        self.output = output


class ProcessTimeoutError(SweepError):
    """Engine did not finish before the deadline and was killed."""


class MetricParseError(SweepError):
    """A labelled line carried a value that is not a number."""


class SweepCancelledError(SweepError):
    """Cancellation was requested while the engine was running."""
