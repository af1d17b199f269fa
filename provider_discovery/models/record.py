"""Canonical provider record models."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Address(BaseModel):
    """A postal address attached to a provider."""

    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country_code: str = ""
    purpose: str = Field(default="", description="Registry purpose tag: LOCATION or MAILING")

    def is_empty(self) -> bool:
        return not any([self.address_1, self.address_2, self.city, self.state, self.postal_code])


class TaxonomyEntry(BaseModel):
    """A professional taxonomy classification attached to a provider."""

    code: str
    description: str = ""
    primary: bool = False
    license: str = ""
    state: str = ""


class AlternateIdentifier(BaseModel):
    """An additional identifier such as a state license or Medicaid number."""

    value: str
    description: str = ""
    state: str = ""
    issuer: str = ""


class CanonicalRecord(BaseModel):
    """A provider normalized from any source."""

    identifier: str = Field(description="Deduplication key: registry number or derived hash")
    identity_kind: str = Field(default="external", description="'external' or 'derived'")
    name: str = Field(default="", description="Organization or display name")
    enumeration_type: Optional[str] = None
    credential: Optional[str] = None

    practice_address: Optional[Address] = None
    mailing_address: Optional[Address] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None

    authorized_official: Optional[str] = None
    authorized_official_title: Optional[str] = None
    status: Optional[str] = None
    last_updated: Optional[str] = None
    discovered_at: datetime = Field(default_factory=datetime.utcnow)

    # Unioned on merge
    taxonomies: list[TaxonomyEntry] = Field(default_factory=list)
    alternate_identifiers: list[AlternateIdentifier] = Field(default_factory=list)
    alternate_names: list[str] = Field(default_factory=list)
    source_tags: list[str] = Field(default_factory=list)

    @property
    def taxonomy_codes(self) -> list[str]:
        return [t.code for t in self.taxonomies]

    @property
    def primary_taxonomy(self) -> Optional[TaxonomyEntry]:
        for taxonomy in self.taxonomies:
            if taxonomy.primary:
                return taxonomy
        return self.taxonomies[0] if self.taxonomies else None
