"""SQLAlchemy-backed lead gateway.

Uniqueness is enforced by the database itself: the three lead keys map to
unique constraints, and a violation on insert is reported as a duplicate.
"""
from __future__ import annotations

import contextlib
from datetime import datetime
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    and_,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool

from ..models import Lead, LeadKeys
from .base import InsertOutcome

LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the lead tables."""


class LeadRecord(Base):
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("name_key", "location_key", name="uq_leads_name_location"),
        UniqueConstraint("name_key", "phone_key", name="uq_leads_name_phone"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    business_name: Mapped[str] = mapped_column(Text, nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    location_key: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # NULL for leads without a phone; NULLs never collide in the unique constraint.
    phone_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    phones: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    emails: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    facebook_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website_quality: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="GOOGLE_MAPS")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="NEW")
    extra: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    @classmethod
    def from_lead(cls, lead: Lead) -> "LeadRecord":
        keys = lead.candidate_keys()
        return cls(
            business_name=lead.business_name,
            name_key=keys.name_location[0],
            location=lead.location,
            location_key=keys.name_location[1],
            industry=lead.industry,
            source_url=keys.source_url,
            address=lead.address,
            phone=lead.phone,
            phone_key=keys.name_phone[1] if keys.name_phone else None,
            email=lead.email,
            phones=list(lead.phones),
            emails=list(lead.emails),
            website=lead.website,
            rating=lead.rating,
            review_count=lead.review_count,
            facebook_url=lead.facebook_url,
            website_quality=lead.website_quality_score,
            score=lead.lead_score,
            notes=lead.notes,
            source=lead.source,
            status=lead.status,
            extra=dict(lead.metadata),
        )

    def to_lead(self) -> Lead:
        return Lead(
            business_name=self.business_name,
            location=self.location,
            industry=self.industry,
            source_url=self.source_url,
            address=self.address,
            phone=self.phone,
            email=self.email,
            phones=list(self.phones or []),
            emails=list(self.emails or []),
            website=self.website,
            rating=self.rating,
            review_count=self.review_count,
            facebook_url=self.facebook_url,
            website_quality_score=self.website_quality,
            lead_score=self.score,
            notes=self.notes,
            source=self.source,
            status=self.status,
            metadata=dict(self.extra or {}),
        )


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"})


class SqlLeadGateway:
    """Store leads in any SQLAlchemy-supported database."""

    def __init__(self, url: str = "sqlite:///leads.db", *, engine: Optional[Engine] = None, echo: bool = False) -> None:
        self._serialise: Optional[threading.Lock] = None
        if engine is None:
            if _is_memory_sqlite(url):
                # One shared connection, so every worker thread sees the same database.
                engine = create_engine(
                    url,
                    echo=echo,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
                self._serialise = threading.Lock()
            else:
                engine = create_engine(url, echo=echo)
        self.engine = engine
        Base.metadata.create_all(self.engine)

    @contextlib.contextmanager
    def _session(self) -> Iterator[Session]:
        lock = self._serialise or contextlib.nullcontext()
        with lock:
            with Session(self.engine) as session:
                yield session

    def exists(self, keys: LeadKeys) -> bool:
        name_key, location_key = keys.name_location
        clauses = [
            and_(LeadRecord.name_key == name_key, LeadRecord.location_key == location_key),
        ]
        if keys.source_url:
            clauses.append(LeadRecord.source_url == keys.source_url)
        if keys.name_phone is not None:
            clauses.append(and_(LeadRecord.name_key == keys.name_phone[0], LeadRecord.phone_key == keys.name_phone[1]))
        statement = select(LeadRecord.id).where(or_(*clauses)).limit(1)
        with self._session() as session:
            return session.execute(statement).first() is not None

    def insert(self, lead: Lead) -> InsertOutcome:
        with self._session() as session:
            session.add(LeadRecord.from_lead(lead))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                LOGGER.debug("Unique constraint rejected lead %s", lead.business_name)
                return InsertOutcome.DUPLICATE
        return InsertOutcome.INSERTED

    def count(self) -> int:
        with self._session() as session:
            return int(session.scalar(select(func.count()).select_from(LeadRecord)) or 0)

    def all(self) -> List[Lead]:
        with self._session() as session:
            records = session.scalars(select(LeadRecord).order_by(LeadRecord.id)).all()
            return [record.to_lead() for record in records]

    def close(self) -> None:
        self.engine.dispose()


__all__ = ["Base", "LeadRecord", "SqlLeadGateway"]
