"""Lead persistence gateways."""
from __future__ import annotations

from .base import InsertOutcome, LeadGateway
from .memory import InMemoryLeadGateway


def build_gateway(database_url: str | None = None, *, in_memory: bool = False) -> LeadGateway:
    """Return an in-memory gateway or a SQL gateway for ``database_url``."""

    if in_memory or not database_url:
        return InMemoryLeadGateway()
    from .sql import SqlLeadGateway

    return SqlLeadGateway(database_url)


__all__ = ["InMemoryLeadGateway", "InsertOutcome", "LeadGateway", "build_gateway"]
