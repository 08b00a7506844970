"""Configuration helpers for the lead discovery pipeline."""
from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_LOCATIONS = [
    "Johannesburg",
    "Cape Town",
    "Durban",
    "Pretoria",
    "Port Elizabeth",
    "Bloemfontein",
    "East London",
    "Pietermaritzburg",
    "Kimberley",
    "Polokwane",
    "Nelspruit",
    "Rustenburg",
    "George",
    "Stellenbosch",
    "Sandton",
]

DEFAULT_CATEGORIES = [
    "plumber",
    "electrician",
    "mechanic",
    "hair salon",
    "restaurant",
    "dentist",
    "lawyer",
    "accountant",
    "physiotherapist",
    "gym",
    "bakery",
    "butcher",
    "florist",
    "photographer",
    "wedding venue",
    "guest house",
    "bed and breakfast",
    "car wash",
    "dry cleaner",
    "locksmith",
    "pest control",
    "landscaper",
    "painter",
    "tiler",
    "carpenter",
]

ENV_PREFIX = "LEAD_DISCOVERY_"


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        import yaml

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class PipelineSettings:
    """Scalar knobs for a discovery run, with the defaults used in production."""

    # Work distribution
    workers: int = 1
    locations: List[str] = field(default_factory=lambda: list(DEFAULT_LOCATIONS))
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    country: Optional[str] = "South Africa"
    target_leads: Optional[int] = 50

    # Browser
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "en-ZA"
    viewport_width: int = 1920
    viewport_height: int = 1080
    page_timeout: float = 15.0
    navigation_timeout: float = 30.0

    # Worker pacing
    max_results_per_search: int = 20
    listing_delay: float = 1.0
    search_delay: float = 2.0
    error_delay: float = 2.0
    max_consecutive_errors: int = 5

    # Prospect qualification
    min_rating: float = 3.0
    quality_threshold: int = 60
    quality_strategy: str = "pagespeed"
    enrich_emails: bool = True

    # Quality service
    pagespeed_api_key: Optional[str] = None
    pagespeed_endpoint: str = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    max_attempts: int = 5
    initial_backoff: float = 60.0
    api_call_delay: float = 2.0
    request_timeout: float = 60.0
    quality_weights: Tuple[float, float, float, float] = (0.25, 0.25, 0.25, 0.25)
    cache_ttl: float = 24 * 60 * 60

    # Persistence
    database_url: str = "sqlite:///leads.db"

    # Rule and selector overrides
    social_patterns: List[str] = field(default_factory=list)
    diy_patterns: List[str] = field(default_factory=list)
    selectors: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.quality_weights = tuple(float(weight) for weight in self.quality_weights)  # type: ignore[assignment]
        self.validate()

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigurationError("'workers' must be at least 1")
        if self.max_attempts < 1:
            raise ConfigurationError("'max_attempts' must be at least 1")
        if not 0 <= self.quality_threshold <= 100:
            raise ConfigurationError("'quality_threshold' must be between 0 and 100")
        if len(self.quality_weights) != 4 or sum(self.quality_weights) <= 0:
            raise ConfigurationError("'quality_weights' needs four weights with a positive sum")
        if self.quality_strategy not in {"pagespeed", "heuristic"}:
            raise ConfigurationError(
                f"Unknown quality strategy '{self.quality_strategy}'. Use 'pagespeed' or 'heuristic'"
            )
        if self.target_leads is not None and self.target_leads < 1:
            raise ConfigurationError("'target_leads' must be positive when set")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PipelineSettings":
        """Build settings from a configuration mapping, rejecting unknown keys."""

        known = {item.name for item in dataclasses.fields(cls)}
        flattened: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "classifier" and isinstance(value, Mapping):
                flattened.update(value)
                continue
            flattened[key] = value

        unknown = sorted(set(flattened) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        try:
            return cls(**flattened)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(str(exc)) from exc

    def with_overrides(self, **overrides: Any) -> "PipelineSettings":
        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        return dataclasses.replace(self, **values)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        """Overlay ``LEAD_DISCOVERY_*`` environment variables onto these settings."""

        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for item in dataclasses.fields(self):
            raw = environ.get(ENV_PREFIX + item.name.upper())
            if raw is None:
                continue
            overrides[item.name] = _coerce(raw, getattr(self, item.name), item.name)
        if overrides:
            LOGGER.debug("Applying environment overrides: %s", sorted(overrides))
        return self.with_overrides(**overrides)


def _coerce(raw: str, current: Any, name: str) -> Any:
    try:
        if isinstance(current, bool):
            return raw.strip().lower() in {"1", "true", "yes", "on"}
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
        if isinstance(current, (list, tuple)):
            items = [item.strip() for item in raw.split(",") if item.strip()]
            if isinstance(current, tuple):
                return tuple(float(item) for item in items)
            return items
    except ValueError as exc:
        raise ConfigurationError(f"Environment value for '{name}' is invalid: {raw!r}") from exc
    if name == "target_leads":
        return int(raw)
    return raw


def load_settings(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PipelineSettings:
    data = load_configuration(path) if path else {}
    return PipelineSettings.from_mapping(data).with_env(environ)


__all__ = [
    "ConfigurationError",
    "DEFAULT_CATEGORIES",
    "DEFAULT_LOCATIONS",
    "PipelineSettings",
    "load_configuration",
    "load_settings",
]
