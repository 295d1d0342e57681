#!/usr/bin/env python3
"""
Per-item check outcomes.

A check either succeeds, carrying nothing, or fails with a diagnostic
string describing why. Both variants are immutable.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Success:
    """Outcome of a check that passed."""

    @property
    def successful(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """
    Outcome of a check that failed.

    Attributes:
        diagnostic: Human-readable reason for the failure
    """
    diagnostic: str

    @property
    def successful(self) -> bool:
        return False


CheckOutcome = Union[Success, Failure]
