"""masweep — moving-average crossover parameter sweeps.

The strategy itself lives in an external engine binary. This package only
decides what to ask it, asks it, and reads back what it says.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
