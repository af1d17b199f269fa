"""DuckDuckGo web search connector."""

import asyncio
import logging
from typing import Optional

from duckduckgo_search import DDGS

from provider_discovery.config import settings
from provider_discovery.models import Page, QueryPlan
from .base import RegistryConnector, RegistryError

logger = logging.getLogger(__name__)

# Directories and social sites rather than practices
SKIP_DOMAINS = [
    "yelp.com", "facebook.com", "instagram.com", "linkedin.com",
    "twitter.com", "youtube.com", "wikipedia.org", "groupon.com",
    "realself.com", "healthgrades.com", "zocdoc.com", "yellowpages.com",
]


class DuckDuckGoConnector(RegistryConnector):
    """Free-text provider search through DuckDuckGo.

    Each plan is a single query and yields a single page.
    """

    name = "duckduckgo"

    def __init__(self, results_per_query: Optional[int] = None, **kwargs):
        super().__init__(**kwargs)
        self.results_per_query = results_per_query or settings.web_results_per_query

    def build_query(self, plan: QueryPlan) -> str:
        location = plan.jurisdiction.label()
        return f"{plan.value} {location}".strip()

    async def fetch_page(self, plan: QueryPlan, cursor: int) -> Page:
        page = await super().fetch_page(plan, cursor)
        # Search results are not offset-addressable
        page.next_cursor = None
        return page

    async def _request_page(self, plan: QueryPlan, cursor: int) -> list[dict]:
        query = self.build_query(plan)
        try:
            # Run synchronous DDG search in thread pool
            results = await asyncio.to_thread(self._execute_search, query)
        except Exception as e:
            raise RegistryError(f"search failed for '{query}': {e}", retryable=True) from e

        return [r for r in results if isinstance(r, dict) and not self._is_skipped(r.get("href", ""))]

    def _execute_search(self, query: str) -> list[dict]:
        """Execute a DuckDuckGo search (synchronous)."""
        with DDGS() as ddgs:
            return list(ddgs.text(query, max_results=self.results_per_query))

    @staticmethod
    def _is_skipped(url: str) -> bool:
        url = (url or "").lower()
        return any(domain in url for domain in SKIP_DOMAINS)
