"""NPPES NPI Registry connector."""

import logging
from typing import Optional

import httpx

from provider_discovery.config import settings
from provider_discovery.models import QueryPlan, StrategyKind
from .base import RegistryConnector, RegistryError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class NPIRegistryConnector(RegistryConnector):
    """Query the public NPI Registry API (v2.1), one offset page at a time."""

    name = "npi_registry"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url or settings.npi_api_url
        self.api_version = api_version or settings.npi_api_version
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.read_timeout, connect=settings.connect_timeout),
            headers={"User-Agent": settings.user_agent},
        )

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    def build_params(self, plan: QueryPlan, cursor: int) -> dict[str, str]:
        """Translate a plan and offset into registry query parameters."""
        params = {
            "version": self.api_version,
            "limit": str(self.page_size),
            "skip": str(cursor),
            "state": plan.jurisdiction.state,
        }
        if plan.jurisdiction.city:
            params["city"] = plan.jurisdiction.city

        if plan.strategy == StrategyKind.TAXONOMY:
            params["taxonomy_description"] = plan.value
        elif plan.strategy == StrategyKind.KEYWORD:
            params["organization_name"] = f"*{plan.value}*"
            params["enumeration_type"] = "NPI-2"
        elif plan.strategy == StrategyKind.POSTAL:
            params["postal_code"] = plan.value
        elif plan.strategy == StrategyKind.OFFICIAL_NAME:
            params["authorized_official_last_name"] = f"*{plan.value}*"
            params["enumeration_type"] = "NPI-2"

        # An explicit type on the plan wins over the strategy default
        if plan.enumeration_type:
            params["enumeration_type"] = plan.enumeration_type

        return params

    async def _request_page(self, plan: QueryPlan, cursor: int) -> list[dict]:
        params = self.build_params(plan, cursor)
        logger.debug(f"GET {self.base_url} {params}")

        try:
            response = await self._client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            raise RegistryError(f"transport error: {e}", retryable=True) from e

        if response.status_code != 200:
            raise RegistryError(
                f"HTTP {response.status_code}",
                retryable=response.status_code in RETRYABLE_STATUS,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RegistryError(f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise RegistryError("unexpected payload shape")

        errors = data.get("Errors")
        if errors:
            descriptions = [
                err.get("description", str(err)) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            raise RegistryError("registry error: " + "; ".join(descriptions))

        results = data.get("results") or []
        if not isinstance(results, list):
            raise RegistryError("results is not a list")
        return results
