"""Mock connector for testing."""

from typing import Callable, Optional

from provider_discovery.models import QueryPlan
from .base import RegistryConnector, RegistryError

PageFactory = Callable[[QueryPlan, int, int], list[dict]]


class MockRegistryConnector(RegistryConnector):
    """Connector returning deterministic pages without network access.

    `page_factory(plan, cursor, page_size)` builds each page. Without one,
    a small fixed set of registry-shaped records is served for every plan.
    """

    name = "mock"

    def __init__(
        self,
        page_factory: Optional[PageFactory] = None,
        fail_on: Optional[set[int]] = None,
        **kwargs,
    ):
        kwargs.setdefault("rate_limit_delay", 0.0)
        super().__init__(**kwargs)
        self.page_factory = page_factory or self._default_page
        self.fail_on = fail_on or set()
        self.calls: list[tuple[QueryPlan, int]] = []

    async def _request_page(self, plan: QueryPlan, cursor: int) -> list[dict]:
        self.calls.append((plan, cursor))
        if cursor in self.fail_on:
            raise RegistryError(f"simulated failure at offset {cursor}")
        return self.page_factory(plan, cursor, self.page_size)

    @staticmethod
    def full_pages(plan: QueryPlan, cursor: int, page_size: int) -> list[dict]:
        """A source that never runs out."""
        return [{"number": str(1_000_000_000 + cursor + i)} for i in range(page_size)]

    def _default_page(self, plan: QueryPlan, cursor: int, page_size: int) -> list[dict]:
        if cursor > 0:
            return []
        return [record for record in default_records() if record["addresses"][0]["state"] == plan.jurisdiction.state]


def _address(line: str, city: str, state: str, postal: str, purpose: str = "LOCATION") -> dict:
    return {
        "address_1": line,
        "address_2": "",
        "city": city.upper(),
        "state": state,
        "postal_code": postal,
        "country_code": "US",
        "address_purpose": purpose,
        "telephone_number": "212-555-0100",
    }


def default_records() -> list[dict]:
    """Registry-shaped sample records spanning each category."""
    return [
        {
            "number": "1000000001",
            "enumeration_type": "NPI-2",
            "basic": {"organization_name": "MANHATTAN MEDICAL SPA", "status": "A"},
            "addresses": [
                _address("100 PARK AVE", "New York", "NY", "10017"),
                _address("PO BOX 1", "New York", "NY", "10017", purpose="MAILING"),
            ],
            "taxonomies": [{"code": "363L00000X", "desc": "Nurse Practitioner", "primary": True}],
        },
        {
            "number": "1000000002",
            "enumeration_type": "NPI-1",
            "basic": {"first_name": "JANE", "last_name": "DOE", "credential": "MD"},
            "addresses": [_address("200 MADISON AVE", "New York", "NY", "10016")],
            "taxonomies": [{"code": "207N00000X", "desc": "Dermatology", "primary": True}],
        },
        {
            "number": "1000000003",
            "enumeration_type": "NPI-2",
            "basic": {"organization_name": "BROOKLYN SMILES DENTAL"},
            "addresses": [_address("1 ATLANTIC AVE", "Brooklyn", "NY", "11201")],
            "taxonomies": [{"code": "122300000X", "desc": "Dentist", "primary": True}],
        },
        {
            "number": "1000000004",
            "enumeration_type": "NPI-2",
            "basic": {"organization_name": "MIAMI AESTHETIC MEDICINE CENTER"},
            "addresses": [_address("50 OCEAN DR", "Miami Beach", "FL", "33139")],
            "taxonomies": [{"code": "208200000X", "desc": "Plastic Surgery", "primary": True}],
        },
        {
            "number": "1000000005",
            "enumeration_type": "NPI-2",
            "basic": {"organization_name": "BISCAYNE MED SPA"},
            "addresses": [_address("900 BISCAYNE BLVD", "Miami", "FL", "33132")],
            "taxonomies": [],
        },
    ]
