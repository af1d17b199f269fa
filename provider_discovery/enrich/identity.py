"""Canonical identifier strategies."""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional


class IdentityStrategy(ABC):
    """Produces the merge key for a record."""

    kind: str = "base"

    @abstractmethod
    def identify(self, name: str, address_line: str, external_id: Optional[str] = None) -> Optional[str]:
        """Return the canonical identifier, or None when one cannot be formed."""
        pass


class ExternalIdIdentity(IdentityStrategy):
    """Use the identifier the source assigned."""

    kind = "external"

    def identify(self, name: str, address_line: str, external_id: Optional[str] = None) -> Optional[str]:
        if external_id is None:
            return None
        external_id = str(external_id).strip()
        return external_id or None


class DerivedHashIdentity(IdentityStrategy):
    """Hash of the lowercased name and first address line.

    Two hits with the same name and address collapse to one record.
    """

    kind = "derived"
    PREFIX = "SYN-"

    @staticmethod
    def _clean(value: str) -> str:
        return " ".join((value or "").lower().split())

    def identify(self, name: str, address_line: str, external_id: Optional[str] = None) -> Optional[str]:
        name = self._clean(name)
        if not name:
            return None
        key = f"{name}|{self._clean(address_line)}"
        return self.PREFIX + hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
