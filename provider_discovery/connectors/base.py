"""Abstract base class for registry connectors."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from provider_discovery.config import settings
from provider_discovery.models import Page, QueryPlan

logger = logging.getLogger(__name__)


DEADLINE_EXCEEDED = "deadline exceeded"


class RegistryError(Exception):
    """A page could not be fetched or parsed."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class RegistryConnector(ABC):
    """Paged access to a source of provider records.

    Subclasses implement `_request_page`. The base class owns everything that
    must hold for every source: the global spacing between requests, retries,
    the end-of-data rule, the per-plan safety cap and the per-plan deadline.
    """

    name: str = "base"

    def __init__(
        self,
        page_size: Optional[int] = None,
        rate_limit_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        plan_deadline: Optional[float] = None,
    ):
        self.page_size = page_size if page_size is not None else settings.registry_page_size
        self.rate_limit_delay = (
            rate_limit_delay if rate_limit_delay is not None else settings.rate_limit_delay
        )
        self.max_retries = max_retries if max_retries is not None else settings.request_retries
        self.retry_backoff = retry_backoff if retry_backoff is not None else settings.retry_backoff
        self.plan_deadline = (
            plan_deadline if plan_deadline is not None else settings.plan_deadline_seconds
        )

        # Shared across all plans using this connector
        self._last_request: Optional[float] = None
        self._rate_limit_lock = asyncio.Lock()
        self.requests_made = 0

    @abstractmethod
    async def _request_page(self, plan: QueryPlan, cursor: int) -> list[dict]:
        """
        Issue one request and return its raw records.

        Args:
            plan: The query plan being executed
            cursor: Offset of the first record to return

        Returns:
            Raw records for this page

        Raises:
            RegistryError: on transport, status or payload failure
        """
        pass

    async def close(self):
        """Release any held resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch_page(self, plan: QueryPlan, cursor: int) -> Page:
        """Fetch one page, never raising for transport or parse failures.

        A failed page comes back empty with `error` set and no next cursor,
        which ends the plan.
        """
        attempt = 0
        while True:
            attempt += 1
            await self._wait_for_rate_limit()
            try:
                records = await self._request_page(plan, cursor)
                break
            except RegistryError as e:
                if e.retryable and attempt <= self.max_retries:
                    wait_for = self.retry_backoff * attempt
                    logger.warning(
                        f"{plan.describe()} failed at offset {cursor} ({e}); "
                        f"retrying in {wait_for:.1f}s (attempt {attempt}/{self.max_retries + 1})"
                    )
                    await asyncio.sleep(wait_for)
                    continue
                logger.warning(f"Page fetch failed for {plan.describe()} at offset {cursor}: {e}")
                return Page(records=[], cursor=cursor, next_cursor=None, error=str(e))

        return Page(
            records=records,
            cursor=cursor,
            next_cursor=self._next_cursor(plan, cursor, len(records)),
        )

    def _next_cursor(self, plan: QueryPlan, cursor: int, count: int) -> Optional[int]:
        """A full page means more may remain; a short page is the end."""
        if count < self.page_size:
            return None
        next_cursor = cursor + count
        if next_cursor > plan.safety_cap:
            logger.debug(f"Safety cap {plan.safety_cap} reached for {plan.describe()}")
            return None
        return next_cursor

    async def iter_pages(self, plan: QueryPlan) -> AsyncIterator[Page]:
        """Yield pages for a plan from `plan.cursor` until exhaustion, cap or deadline.

        Exceeding the deadline yields a final empty page whose error says so.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.plan_deadline
        cursor: Optional[int] = plan.cursor

        while cursor is not None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                yield self._deadline_page(plan, cursor)
                return
            try:
                page = await asyncio.wait_for(self.fetch_page(plan, cursor), timeout=remaining)
            except asyncio.TimeoutError:
                yield self._deadline_page(plan, cursor)
                return

            yield page
            cursor = page.next_cursor

    def _deadline_page(self, plan: QueryPlan, cursor: int) -> Page:
        logger.warning(f"Deadline of {self.plan_deadline:.0f}s exceeded for {plan.describe()}")
        return Page(records=[], cursor=cursor, next_cursor=None, error=DEADLINE_EXCEEDED)

    async def _wait_for_rate_limit(self):
        """Space every request at least `rate_limit_delay` after the previous one."""
        async with self._rate_limit_lock:
            if self._last_request is not None:
                elapsed = time.monotonic() - self._last_request
                if elapsed < self.rate_limit_delay:
                    await asyncio.sleep(self.rate_limit_delay - elapsed)

            self._last_request = time.monotonic()
            self.requests_made += 1
