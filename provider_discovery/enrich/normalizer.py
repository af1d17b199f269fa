"""Map raw registry and search records onto CanonicalRecord."""

import logging
import re
from typing import Any, Optional

from provider_discovery.models import (
    Address,
    AlternateIdentifier,
    CanonicalRecord,
    QueryPlan,
    SourceKind,
    TaxonomyEntry,
)
from .identity import DerivedHashIdentity, ExternalIdIdentity, IdentityStrategy

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+", re.I)


def extract_phone(text: Optional[str]) -> Optional[str]:
    """First phone-shaped substring, unvalidated."""
    if not text:
        return None
    match = PHONE_PATTERN.search(text)
    return match.group(0) if match else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list:
    return value if isinstance(value, list) else []


def title_to_name(title: str) -> str:
    """Search titles are usually "Practice Name - Tagline" or "Name | City"."""
    return title.split(" - ")[0].split(" | ")[0].strip()


class RecordNormalizer:
    """Normalize raw records from any source.

    Missing optional fields become empty values. `normalize` returns None only
    when a record has no usable shape at all.
    """

    def __init__(
        self,
        registry_identity: Optional[IdentityStrategy] = None,
        search_identity: Optional[IdentityStrategy] = None,
    ):
        self.registry_identity = registry_identity or ExternalIdIdentity()
        self.search_identity = search_identity or DerivedHashIdentity()

    def normalize(
        self,
        raw: Any,
        source: SourceKind,
        plan: Optional[QueryPlan] = None,
    ) -> Optional[CanonicalRecord]:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping non-mapping {source.value} record: {type(raw).__name__}")
            return None

        if source == SourceKind.REGISTRY:
            return self._normalize_registry(raw, plan)
        return self._normalize_search(raw, plan)

    # Registry records

    def _normalize_registry(self, raw: dict, plan: Optional[QueryPlan]) -> Optional[CanonicalRecord]:
        basic = _mapping(raw.get("basic"))
        name = self._registry_name(basic)
        addresses = [self._address(a) for a in _sequence(raw.get("addresses")) if isinstance(a, dict)]
        practice, mailing = self.select_addresses(addresses)

        identifier = self.registry_identity.identify(
            name, practice.address_1 if practice else "", raw.get("number")
        )
        identity_kind = self.registry_identity.kind
        if identifier is None:
            # Registry rows without a number fall back to the derived key
            identifier = self.search_identity.identify(name, practice.address_1 if practice else "")
            identity_kind = self.search_identity.kind
        if identifier is None:
            logger.debug("Skipping registry record with neither number nor name")
            return None

        phone_source = self._preferred_raw_address(_sequence(raw.get("addresses")))
        phone = _text(phone_source.get("telephone_number")) or None
        fax = _text(phone_source.get("fax_number")) or None

        official = " ".join(
            p for p in [
                _text(basic.get("authorized_official_first_name")),
                _text(basic.get("authorized_official_last_name")),
            ] if p
        )

        return CanonicalRecord(
            identifier=identifier,
            identity_kind=identity_kind,
            name=name,
            enumeration_type=_text(raw.get("enumeration_type")) or None,
            credential=_text(basic.get("credential")) or None,
            practice_address=practice,
            mailing_address=mailing,
            phone=phone,
            fax=fax,
            authorized_official=official or None,
            authorized_official_title=_text(basic.get("authorized_official_title_or_position")) or None,
            status=_text(basic.get("status")) or None,
            last_updated=_text(basic.get("last_updated")) or None,
            taxonomies=self._taxonomies(raw.get("taxonomies")),
            alternate_identifiers=self._identifiers(raw.get("identifiers")),
            alternate_names=self._other_names(raw.get("other_names")),
            source_tags=[self._source_tag(SourceKind.REGISTRY, plan)],
        )

    @staticmethod
    def _registry_name(basic: dict) -> str:
        organization = _text(basic.get("organization_name")) or _text(basic.get("name"))
        if organization:
            return organization

        person = " ".join(p for p in [_text(basic.get("first_name")), _text(basic.get("last_name"))] if p)
        credential = _text(basic.get("credential"))
        if person and credential:
            return f"{person}, {credential}"
        return person

    @staticmethod
    def _address(raw: dict) -> Address:
        return Address(
            address_1=_text(raw.get("address_1")),
            address_2=_text(raw.get("address_2")),
            city=_text(raw.get("city")),
            state=_text(raw.get("state")),
            postal_code=_text(raw.get("postal_code")),
            country_code=_text(raw.get("country_code")),
            purpose=_text(raw.get("address_purpose")).upper(),
        )

    @staticmethod
    def select_addresses(addresses: list[Address]) -> tuple[Optional[Address], Optional[Address]]:
        """Return (practice, mailing).

        Practice is the LOCATION address, else the first listed one. Mailing is
        kept independently when present.
        """
        addresses = [a for a in addresses if not a.is_empty()]
        if not addresses:
            return None, None

        practice = next((a for a in addresses if a.purpose == "LOCATION"), addresses[0])
        mailing = next((a for a in addresses if a.purpose == "MAILING"), None)
        return practice, mailing

    @staticmethod
    def _preferred_raw_address(raw_addresses: list) -> dict:
        candidates = [a for a in raw_addresses if isinstance(a, dict)]
        for address in candidates:
            if _text(address.get("address_purpose")).upper() == "LOCATION":
                return address
        return candidates[0] if candidates else {}

    @staticmethod
    def _taxonomies(raw: Any) -> list[TaxonomyEntry]:
        entries = []
        for item in _sequence(raw):
            if not isinstance(item, dict):
                continue
            code = _text(item.get("code"))
            if not code:
                continue
            entry = TaxonomyEntry(
                code=code,
                description=_text(item.get("desc")),
                primary=bool(item.get("primary")),
                license=_text(item.get("license")),
                state=_text(item.get("state")),
            )
            if entry not in entries:
                entries.append(entry)
        return entries

    @staticmethod
    def _identifiers(raw: Any) -> list[AlternateIdentifier]:
        identifiers = []
        for item in _sequence(raw):
            if not isinstance(item, dict) or not _text(item.get("identifier")):
                continue
            identifier = AlternateIdentifier(
                value=_text(item.get("identifier")),
                description=_text(item.get("desc")),
                state=_text(item.get("state")),
                issuer=_text(item.get("issuer")),
            )
            if identifier not in identifiers:
                identifiers.append(identifier)
        return identifiers

    @staticmethod
    def _other_names(raw: Any) -> list[str]:
        names = []
        for item in _sequence(raw):
            if isinstance(item, dict):
                name = _text(item.get("organization_name")) or " ".join(
                    p for p in [_text(item.get("first_name")), _text(item.get("last_name"))] if p
                )
            else:
                name = _text(item)
            if name and name not in names:
                names.append(name)
        return names

    # Free-text search records

    def _normalize_search(self, raw: dict, plan: Optional[QueryPlan]) -> Optional[CanonicalRecord]:
        title = _text(raw.get("title")) or _text(raw.get("name"))
        body = _text(raw.get("body")) or _text(raw.get("description"))
        url = _text(raw.get("href")) or _text(raw.get("url"))
        if not url:
            match = URL_PATTERN.search(body)
            url = match.group(0) if match else ""

        name = title_to_name(title)
        address_line = _text(raw.get("address"))

        # Search hits carry no structured address; the searched area stands in
        address = Address(address_1=address_line)
        if plan is not None:
            address.city = plan.jurisdiction.city or ""
            address.state = plan.jurisdiction.state
            address.postal_code = plan.jurisdiction.postal_code or ""

        # Without a street line, key on the area so same-named practices in
        # different cities stay apart
        location = address_line or ", ".join(p for p in [address.city, address.state] if p)
        identifier = self.search_identity.identify(name, location)
        if identifier is None:
            logger.debug(f"Skipping search result without a usable name: {url or '<no url>'}")
            return None
        if address.is_empty():
            address = None

        return CanonicalRecord(
            identifier=identifier,
            identity_kind=self.search_identity.kind,
            name=name,
            practice_address=address,
            phone=extract_phone(body) or extract_phone(title),
            website=url or None,
            description=body[:500] if body else None,
            source_tags=[self._source_tag(SourceKind.WEB_SEARCH, plan)],
        )

    @staticmethod
    def _source_tag(source: SourceKind, plan: Optional[QueryPlan]) -> str:
        if plan is None:
            return source.value
        return f"{source.value}:{plan.strategy.value}"
