"""
Driver Matching Policy
======================

The dispatch rule is deliberately naive: take the first driver the
directory yields.  The directory enumerates active drivers with an
approved profile in a fixed order (registration time, then id), so the
choice is stable for a given snapshot.  Callers only observe "assigned"
or "still searching".

Complexity: O(1) over an already materialised snapshot.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .entities import DriverCandidate


class MatchingPolicy(ABC):
    @abstractmethod
    def select(
        self, candidates: Sequence[DriverCandidate]
    ) -> Optional[DriverCandidate]: ...


class FirstAvailableDriver(MatchingPolicy):
    def select(
        self, candidates: Sequence[DriverCandidate]
    ) -> Optional[DriverCandidate]:
        return candidates[0] if candidates else None
