"""Discovery profile: what to search for and where."""

import json
from pathlib import Path
from pydantic import BaseModel, Field

from .plan import StrategyKind


class ConfigurationError(ValueError):
    """Raised when a profile or runtime setting cannot produce a valid run."""


class TargetArea(BaseModel):
    """A state to search, optionally narrowed to cities and postal codes."""

    state: str = Field(description="Two-letter state code")
    cities: list[str] = Field(default_factory=list, description="Cities to search within the state")
    postal_codes: list[str] = Field(default_factory=list, description="Postal codes for postal strategy")


DEFAULT_TAXONOMY_TABLES: dict[str, list[str]] = {
    "dentist": [
        "122300000X",  # Dentist
        "1223G0001X",  # General Practice
        "1223D0001X",  # Dental Public Health
        "1223E0200X",  # Endodontics
        "1223P0221X",  # Pediatric Dentistry
        "1223P0300X",  # Periodontics
        "1223P0700X",  # Prosthodontics
        "1223S0112X",  # Oral & Maxillofacial Surgery
        "1223X0400X",  # Orthodontics
    ],
    "dermatologist": [
        "207N00000X",  # Dermatology
        "207ND0900X",  # Dermatopathology
        "207NI0002X",  # Clinical & Laboratory Dermatological Immunology
        "207NP0225X",  # Pediatric Dermatology
        "207NS0135X",  # Procedural Dermatology
    ],
    "plastic_surgeon": [
        "208200000X",  # Plastic and Reconstructive Surgery
        "2082S0099X",  # Plastic Surgery Within the Head and Neck
        "2082S0105X",  # Surgery of the Hand
    ],
    "aesthetic_provider": [
        "363L00000X",  # Nurse Practitioner
        "363LF0000X",  # Nurse Practitioner, Family
        "363LP2300X",  # Nurse Practitioner, Primary Care
        "363A00000X",  # Physician Assistant
        "363AM0700X",  # Physician Assistant, Medical
    ],
}


class DiscoveryProfile(BaseModel):
    """Complete search configuration for a discovery run."""

    areas: list[TargetArea] = Field(
        default_factory=lambda: [
            TargetArea(state="NY", cities=["New York", "Brooklyn"]),
            TargetArea(state="FL", cities=["Miami", "Miami Beach"]),
        ],
        description="Jurisdictions to search",
    )

    # Category tables, checked in insertion order
    taxonomy_tables: dict[str, list[str]] = Field(default_factory=lambda: dict(DEFAULT_TAXONOMY_TABLES))

    # Strategy values
    taxonomy_codes: list[str] = Field(
        default_factory=lambda: ["207N00000X", "208200000X", "122300000X"],
        description="Codes searched by the taxonomy strategy",
    )
    keywords: list[str] = Field(
        default_factory=lambda: [
            "medspa", "med spa", "medical spa", "medi spa", "medispa",
            "medical aesthetics", "aesthetic medicine", "laser center",
            "cosmetic center", "skin clinic",
        ],
        description="Organization-name wildcard terms",
    )
    official_surnames: list[str] = Field(
        default_factory=lambda: ["MD", "DO", "PA", "NP"],
        description="Authorized-official surname patterns",
    )
    postal_enumeration_types: list[str] = Field(default_factory=lambda: ["NPI-1", "NPI-2"])

    # Free-text search
    include_web_search: bool = False
    web_search_terms: list[str] = Field(
        default_factory=lambda: ["medical spa", "med spa", "botox clinic", "aesthetic center"],
    )

    # Cross-product and pagination caps
    max_values_per_strategy: int = Field(default=10, description="Values used per strategy and area")
    max_plans: int = Field(default=500, description="Hard ceiling on generated plans")
    safety_caps: dict[StrategyKind, int] = Field(
        default_factory=lambda: {
            StrategyKind.TAXONOMY: 10_000,
            StrategyKind.KEYWORD: 1_000,
            StrategyKind.POSTAL: 5_000,
            StrategyKind.OFFICIAL_NAME: 1_000,
        },
        description="Per-strategy offset ceiling",
    )

    # Assembly policy
    min_score: float = Field(default=0.0, ge=0.0, le=100.0)
    include_unclassified: bool = False

    def safety_cap(self, strategy: StrategyKind) -> int:
        return self.safety_caps.get(strategy, 1_000)

    def validate_for_run(self) -> None:
        """Fail fast on configurations that cannot produce a run."""
        if not self.areas:
            raise ConfigurationError("Profile has no jurisdictions to search")
        for area in self.areas:
            if not area.state or not area.state.strip():
                raise ConfigurationError("Every jurisdiction needs a state")

        has_values = any([
            self.taxonomy_codes,
            self.keywords,
            self.official_surnames,
            any(area.postal_codes for area in self.areas),
            self.include_web_search and self.web_search_terms,
        ])
        if not has_values:
            raise ConfigurationError("Profile has no strategy values to search")

        if self.max_values_per_strategy <= 0:
            raise ConfigurationError("max_values_per_strategy must be positive")
        if self.max_plans <= 0:
            raise ConfigurationError("max_plans must be positive")
        for strategy, cap in self.safety_caps.items():
            if cap <= 0:
                raise ConfigurationError(f"Safety cap for {strategy.value} must be positive")

    @classmethod
    def from_file(cls, path: Path) -> "DiscoveryProfile":
        """Load a profile from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)
