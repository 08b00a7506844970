"""Data models shared by the discovery workers, classifier and persistence layer."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple


# --- Search input ---

@dataclass(frozen=True, slots=True)
class SearchTerm:
    """One (location, category) cell of the search matrix."""

    location: str
    category: str

    def query(self, country: Optional[str] = None) -> str:
        """Return the free-text query sent to the map search."""

        return " ".join(part for part in (self.category, self.location, country) if part)


# --- Extraction output ---

def unique_ci(values: Iterable[Optional[str]]) -> Tuple[str, ...]:
    """Strip and deduplicate ``values`` case-insensitively, keeping discovery order."""

    seen = set()
    ordered: List[str] = []
    for value in values:
        if not value:
            continue
        text = value.strip()
        key = text.casefold()
        if not text or key in seen:
            continue
        seen.add(key)
        ordered.append(text)
    return tuple(ordered)


@dataclass(frozen=True, slots=True)
class ScrapedBusiness:
    """Raw record pulled from a single listing's detail panel."""

    name: str
    source_url: str
    address: str = ""
    phones: Tuple[str, ...] = ()
    emails: Tuple[str, ...] = ()
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    category: Optional[str] = None

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phones[0] if self.phones else None

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0] if self.emails else None

    def with_emails(self, extra: Iterable[str]) -> "ScrapedBusiness":
        """Return a copy with ``extra`` appended to the known emails."""

        return replace(self, emails=unique_ci([*self.emails, *extra]))


# --- Quality analysis ---

@dataclass(slots=True)
class QualityResult:
    """Outcome of analysing one website; lower scores mean better prospects."""

    score: int
    issues: List[str] = field(default_factory=list)
    error: Optional[str] = None
    performance: int = 0
    accessibility: int = 0
    best_practices: int = 0
    seo: int = 0
    source: str = ""

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_metadata(self) -> Dict[str, Any]:
        return {
            "overallScore": self.score,
            "performance": self.performance,
            "accessibility": self.accessibility,
            "bestPractices": self.best_practices,
            "seo": self.seo,
            "issues": list(self.issues),
            "source": self.source,
        }


class ProspectReason(str, enum.Enum):
    NO_WEBSITE = "NO_WEBSITE"
    SOCIAL_OR_DIRECTORY = "SOCIAL_OR_DIRECTORY"
    DIY_PLATFORM = "DIY_PLATFORM"
    POOR_QUALITY = "POOR_QUALITY"
    HAS_QUALITY_WEBSITE = "HAS_QUALITY_WEBSITE"
    STOPPED = "STOPPED"


@dataclass(frozen=True, slots=True)
class ProspectDecision:
    """Whether a business is worth pursuing, and why."""

    is_good: bool
    reason: ProspectReason
    quality_score: Optional[int] = None
    quality: Optional[QualityResult] = None

    @property
    def stopped(self) -> bool:
        return self.reason is ProspectReason.STOPPED


# --- Persistence ---

_NON_PHONE = re.compile(r"[^0-9+]")


def _fold(value: Optional[str]) -> str:
    return " ".join((value or "").split()).casefold()


def normalise_phone(value: Optional[str]) -> str:
    return _NON_PHONE.sub("", value or "")


@dataclass(frozen=True, slots=True)
class LeadKeys:
    """The three keys under which a lead must stay unique."""

    name_location: Tuple[str, str]
    source_url: str
    name_phone: Optional[Tuple[str, str]] = None

    @classmethod
    def build(
        cls,
        name: str,
        location: str,
        source_url: str,
        primary_phone: Optional[str] = None,
    ) -> "LeadKeys":
        name_key = _fold(name)
        phone_key = normalise_phone(primary_phone)
        return cls(
            name_location=(name_key, _fold(location)),
            source_url=(source_url or "").strip(),
            name_phone=(name_key, phone_key) if phone_key else None,
        )


@dataclass(slots=True)
class Lead:
    """A qualifying business as handed to the persistence gateway."""

    business_name: str
    location: str
    industry: str
    source_url: str
    address: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    phones: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    facebook_url: Optional[str] = None
    website_quality_score: int = 0
    lead_score: int = 0
    notes: str = ""
    source: str = "GOOGLE_MAPS"
    status: str = "NEW"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def candidate_keys(self) -> LeadKeys:
        return LeadKeys.build(self.business_name, self.location, self.source_url, self.phone)

    def as_row(self) -> Dict[str, Any]:
        """Return a flat, serialisable representation of the lead."""

        return {
            "business_name": self.business_name,
            "location": self.location,
            "industry": self.industry,
            "address": self.address,
            "phone": self.phone or "",
            "email": self.email or "",
            "phones": "; ".join(self.phones),
            "emails": "; ".join(self.emails),
            "website": self.website or "",
            "rating": self.rating,
            "review_count": self.review_count,
            "website_quality_score": self.website_quality_score,
            "lead_score": self.lead_score,
            "source_url": self.source_url,
            "notes": self.notes,
        }


# --- Run bookkeeping ---

class WorkerState(str, enum.Enum):
    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    LISTING_LOOP = "LISTING_LOOP"
    EXTRACTING = "EXTRACTING"
    CLASSIFYING = "CLASSIFYING"
    SAVING = "SAVING"
    SKIPPED = "SKIPPED"
    DONE = "DONE"


@dataclass(slots=True)
class WorkerRunState:
    """Mutable per-worker counters; never shared between workers."""

    worker_id: int
    state: WorkerState = WorkerState.IDLE
    consecutive_errors: int = 0
    processed: int = 0
    added: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: int = 0


@dataclass(slots=True)
class WorkerResult:
    worker_id: int
    added: int = 0
    processed: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: int = 0
    exhausted: bool = False
    stopped: bool = False

    @classmethod
    def from_state(cls, state: WorkerRunState, *, exhausted: bool, stopped: bool) -> "WorkerResult":
        return cls(
            worker_id=state.worker_id,
            added=state.added,
            processed=state.processed,
            skipped=state.skipped,
            duplicates=state.duplicates,
            errors=state.errors,
            exhausted=exhausted,
            stopped=stopped,
        )


@dataclass(slots=True)
class RunSummary:
    """Counts reported at the end of every run, including partial ones."""

    total_added: int
    per_worker_added: List[int]
    duration_seconds: int
    final_database_count: int
    stopped: bool = False
    stop_reason: Optional[str] = None
    target_reached: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalAdded": self.total_added,
            "perWorkerAdded": list(self.per_worker_added),
            "durationSeconds": self.duration_seconds,
            "finalDatabaseCount": self.final_database_count,
            "stopped": self.stopped,
            "stopReason": self.stop_reason,
            "targetReached": self.target_reached,
        }


__all__ = [
    "Lead",
    "LeadKeys",
    "ProspectDecision",
    "ProspectReason",
    "QualityResult",
    "RunSummary",
    "ScrapedBusiness",
    "SearchTerm",
    "WorkerResult",
    "WorkerRunState",
    "WorkerState",
    "normalise_phone",
    "unique_ci",
]
