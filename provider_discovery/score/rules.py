"""Declarative scoring rules and the two built-in scoring profiles."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RuleTarget(str, Enum):
    """What a rule is matched against."""

    NAME = "name"              # lowercased display name
    TEXT = "text"              # lowercased name plus description
    TAXONOMY = "taxonomy"      # exact taxonomy code


@dataclass(frozen=True)
class ScoringRule:
    """One term with a weight.

    Rules sharing a `group` contribute once between them. `category` marks a
    primary keyword and is reported back for keyword-based category
    inference. An exclusion with `exempt_categories` is skipped for records
    already known to belong to one of them; one marked `waived_by_taxonomy` is
    skipped for any record whose taxonomy codes place it in a target category.
    """

    term: str
    weight: float
    target: RuleTarget
    label: str
    group: Optional[str] = None
    category: Optional[str] = None
    exempt_categories: tuple[str, ...] = ()
    waived_by_taxonomy: bool = False

    def matches(self, name: str, text: str, codes: set[str]) -> bool:
        if self.target == RuleTarget.TAXONOMY:
            return self.term in codes
        haystack = name if self.target == RuleTarget.NAME else text
        return bool(self.term) and self.term in haystack

    def reason(self) -> str:
        sign = "+" if self.weight >= 0 else "-"
        return f"{sign}{abs(self.weight):g} {self.label}: '{self.term}'"


PRIMARY_KEYWORDS: dict[str, list[str]] = {
    "medical_spa": [
        "medspa", "med spa", "medical spa", "medi spa", "medispa",
        "med-spa", "medi-spa", "medical aesthetics", "aesthetic medicine",
    ],
    "dermatologist": ["dermatology", "dermatologist", "skin cancer"],
    "plastic_surgeon": ["plastic surgery", "plastic surgeon", "cosmetic surgery", "cosmetic surgeon"],
    "dentist": ["dentist", "dentistry", "orthodontic", "endodontic", "periodontic", "oral surgery"],
}

SECONDARY_KEYWORDS = [
    "aesthetic", "cosmetic", "rejuvenation", "anti-aging",
    "skin care", "skincare", "wellness", "beauty", "injectables",
]

SERVICE_KEYWORDS = [
    "botox", "dysport", "xeomin", "filler", "juvederm", "restylane",
    "sculptra", "kybella", "coolsculpting", "emsculpt", "morpheus8",
    "microneedling", "prp", "chemical peel", "hydrafacial", "laser", "ipl",
    "ultherapy", "thermage", "iv therapy",
    "body contouring", "lip augmentation", "veneers", "teeth whitening",
]

AESTHETIC_TAXONOMY_CODES = [
    "207N00000X",  # Dermatology
    "208200000X",  # Plastic and Reconstructive Surgery
    "207W00000X",  # Ophthalmology (oculoplastics)
    "363L00000X",  # Nurse Practitioner
    "363A00000X",  # Physician Assistant
]

PROFESSIONAL_PHRASES = ["licensed", "board certified", "board-certified", "medical director"]

# (term, penalty, categories the term is expected for)
# Facility and dental terms are expected for dentists (hospital dental centers,
# pediatric dentistry).
EXCLUSIONS: list[tuple[str, float, tuple[str, ...]]] = [
    ("hospital", 50, ("dentist",)),
    ("emergency", 50, ("dentist",)),
    ("urgent care", 50, ("dentist",)),
    ("pediatric", 50, ("dentist",)),
    ("dental", 50, ("dentist",)),
    ("barber", 30, ()),
    ("nail", 30, ()),
    ("salon", 20, ()),
]

# Subspecialty terms that a matching target taxonomy code already vouches for
TAXONOMY_WAIVED_EXCLUSIONS = ["pediatric"]


@dataclass(frozen=True)
class RuleWeights:
    """Tunable weights; heuristic constants, not fitted values."""

    primary: float = 30
    secondary: float = 20
    service: float = 10
    taxonomy: float = 15
    professional: float = 10


def build_rules(
    weights: RuleWeights = RuleWeights(),
    primary_keywords: Optional[dict[str, list[str]]] = None,
    secondary_keywords: Optional[list[str]] = None,
    service_keywords: Optional[list[str]] = None,
    taxonomy_codes: Optional[list[str]] = None,
    professional_phrases: Optional[list[str]] = None,
    exclusions: Optional[list[tuple[str, float, tuple[str, ...]]]] = None,
    taxonomy_waived: Optional[list[str]] = None,
) -> tuple[ScoringRule, ...]:
    """Expand keyword tables into a flat rule table."""
    primary_keywords = PRIMARY_KEYWORDS if primary_keywords is None else primary_keywords
    rules: list[ScoringRule] = []

    for category, terms in primary_keywords.items():
        for term in terms:
            rules.append(ScoringRule(
                term=term.lower(),
                weight=weights.primary,
                target=RuleTarget.NAME,
                label=f"primary keyword ({category})",
                group=f"primary:{category}",
                category=category,
            ))

    for term in SECONDARY_KEYWORDS if secondary_keywords is None else secondary_keywords:
        rules.append(ScoringRule(term.lower(), weights.secondary, RuleTarget.TEXT, "secondary keyword"))

    for term in SERVICE_KEYWORDS if service_keywords is None else service_keywords:
        rules.append(ScoringRule(term.lower(), weights.service, RuleTarget.TEXT, "service keyword"))

    for code in AESTHETIC_TAXONOMY_CODES if taxonomy_codes is None else taxonomy_codes:
        rules.append(ScoringRule(code.upper(), weights.taxonomy, RuleTarget.TAXONOMY, "aesthetic taxonomy"))

    for phrase in PROFESSIONAL_PHRASES if professional_phrases is None else professional_phrases:
        rules.append(ScoringRule(
            phrase.lower(), weights.professional, RuleTarget.TEXT, "professional indicator",
            group="professional",
        ))

    waived = {t.lower() for t in (TAXONOMY_WAIVED_EXCLUSIONS if taxonomy_waived is None else taxonomy_waived)}
    for term, penalty, exempt in EXCLUSIONS if exclusions is None else exclusions:
        rules.append(ScoringRule(
            term.lower(), -abs(penalty), RuleTarget.NAME, "exclusion",
            exempt_categories=tuple(exempt),
            waived_by_taxonomy=term.lower() in waived,
        ))

    return tuple(rules)


@dataclass(frozen=True)
class ScoringProfile:
    """A base score plus a rule table."""

    name: str
    base: float
    rules: tuple[ScoringRule, ...] = field(default_factory=build_rules)


DEFAULT_RULES = build_rules()

# Registry records are grounded by taxonomy, free-text hits are not
REGISTRY_PROFILE = ScoringProfile(name="registry", base=0, rules=DEFAULT_RULES)
KEYWORD_PROFILE = ScoringProfile(name="keyword", base=40, rules=DEFAULT_RULES)
