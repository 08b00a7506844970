"""Thread-safe in-memory lead gateway."""
from __future__ import annotations

import threading
from typing import Iterable, List, Optional, Set, Tuple

from ..models import Lead, LeadKeys
from .base import InsertOutcome


def _index_entries(keys: LeadKeys) -> List[Tuple[str, object]]:
    entries: List[Tuple[str, object]] = [("name_location", keys.name_location)]
    if keys.source_url:
        entries.append(("source_url", keys.source_url))
    if keys.name_phone is not None:
        entries.append(("name_phone", keys.name_phone))
    return entries


class InMemoryLeadGateway:
    """Keeps leads in a list with a key index guarded by a single lock."""

    def __init__(self, leads: Optional[Iterable[Lead]] = None) -> None:
        self._lock = threading.Lock()
        self._leads: List[Lead] = []
        self._index: Set[Tuple[str, object]] = set()
        for lead in leads or []:
            self.insert(lead)

    def exists(self, keys: LeadKeys) -> bool:
        with self._lock:
            return any(entry in self._index for entry in _index_entries(keys))

    def insert(self, lead: Lead) -> InsertOutcome:
        entries = _index_entries(lead.candidate_keys())
        with self._lock:
            if any(entry in self._index for entry in entries):
                return InsertOutcome.DUPLICATE
            self._index.update(entries)
            self._leads.append(lead)
        return InsertOutcome.INSERTED

    def count(self) -> int:
        with self._lock:
            return len(self._leads)

    def all(self) -> List[Lead]:
        with self._lock:
            return list(self._leads)


__all__ = ["InMemoryLeadGateway"]
