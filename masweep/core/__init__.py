"""masweep.core

Core primitives.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import Config
from .exceptions import MasweepError, SweepError
from .types import MAKind, Metrics, ParameterCombination, RunOutput, SweepResult

__all__ = [
    "Config",
    "MAKind",
    "MasweepError",
    "Metrics",
    "ParameterCombination",
    "RunOutput",
    "SweepError",
    "SweepResult",
]
