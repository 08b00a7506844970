"""Contract between the discovery workers and whatever stores leads."""
from __future__ import annotations

import enum
from typing import List, Protocol

from ..models import Lead, LeadKeys


class InsertOutcome(str, enum.Enum):
    INSERTED = "INSERTED"
    DUPLICATE = "DUPLICATE"


class LeadGateway(Protocol):
    """Storage operations the pipeline relies on.

    Implementations must be safe to call from several worker threads at once
    and must report uniqueness violations as :attr:`InsertOutcome.DUPLICATE`
    rather than raising.
    """

    def exists(self, keys: LeadKeys) -> bool:  # pragma: no cover - runtime protocol
        """True if a lead matches any of ``keys``."""

    def insert(self, lead: Lead) -> InsertOutcome:  # pragma: no cover - runtime protocol
        """Store ``lead`` unless one of its keys is already taken."""

    def count(self) -> int:  # pragma: no cover - runtime protocol
        """Number of stored leads."""

    def all(self) -> List[Lead]:  # pragma: no cover - runtime protocol
        """Every stored lead, oldest first."""


__all__ = ["InsertOutcome", "LeadGateway"]
