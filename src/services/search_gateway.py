"""Search-engine and content-retrieval access over the remote task platform.

Both capabilities are ordinary remote tasks run through the
:class:`ResilientTaskClient`:

- the search task (default ``apify/google-search-scraper``) returns one
  record per results page, each with an ``organicResults`` list;
- the browser task (default ``apify/rag-web-browser``) fetches a URL (or
  runs a free-text query) and returns one record per page with its
  ``markdown``/``text`` content.

This module only shapes task input and normalises output records into
:class:`SearchResult` / :class:`PageContent`.  Failed task runs are logged
and yield empty results; the orchestrator decides what an empty result
means for its phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.services.resilient_task_client import ResilientTaskClient
from src.utils.logging import get_logger

DEFAULT_SEARCH_TASK_ID = "apify/google-search-scraper"
DEFAULT_BROWSER_TASK_ID = "apify/rag-web-browser"


@dataclass(frozen=True)
class SearchResult:
    """One organic search-engine hit."""

    url: str
    title: str = ""
    snippet: str = ""


@dataclass(frozen=True)
class PageContent:
    """Text content of one retrieved page."""

    url: str
    text: str


class SearchGateway:
    """Search and page retrieval expressed as remote tasks."""

    def __init__(
        self,
        task_client: ResilientTaskClient,
        search_task_id: str = DEFAULT_SEARCH_TASK_ID,
        browser_task_id: str = DEFAULT_BROWSER_TASK_ID,
    ) -> None:
        self._client = task_client
        self._search_task_id = search_task_id
        self._browser_task_id = browser_task_id
        self._logger = get_logger(__name__)

    async def search(
        self,
        queries: str | list[str],
        results_per_page: int = 5,
        max_retries: int = 2,
    ) -> list[SearchResult]:
        """Organic results for one or more queries, in result order."""
        query_list = [queries] if isinstance(queries, str) else list(queries)
        result = await self._client.run_task(
            self._search_task_id,
            {
                "queries": "\n".join(query_list),
                "maxPagesPerQuery": 1,
                "resultsPerPage": results_per_page,
            },
            max_retries=max_retries,
        )
        if not result.success:
            self._logger.warning(
                "search_failed",
                queries=query_list,
                error=result.error.message if result.error else None,
            )
            return []

        hits: list[SearchResult] = []
        for record in result.data:
            for item in record.get("organicResults") or []:
                hit = _to_search_result(item)
                if hit is not None:
                    hits.append(hit)
        return hits

    async def fetch_page(self, url: str, max_retries: int = 1) -> PageContent | None:
        """Content of ``url``, or ``None`` if it could not be retrieved."""
        pages = await self.browse(url, max_results=1, max_retries=max_retries)
        if not pages:
            return None
        return PageContent(url=url, text=pages[0].text)

    async def browse(
        self,
        query: str,
        max_results: int = 3,
        max_retries: int = 1,
    ) -> list[PageContent]:
        """Pages the browser task retrieved for a URL or free-text query."""
        result = await self._client.run_task(
            self._browser_task_id,
            {
                "query": query,
                "maxResults": max_results,
                "outputFormats": ["markdown"],
            },
            max_retries=max_retries,
        )
        if not result.success:
            self._logger.warning(
                "page_fetch_failed",
                query=query,
                error=result.error.message if result.error else None,
            )
            return []

        pages: list[PageContent] = []
        for record in result.data:
            crawl = record.get("crawl") or {}
            page_url = record.get("url") or crawl.get("requestUrl") or ""
            pages.append(PageContent(url=page_url, text=record.get("markdown") or record.get("text") or ""))
        return pages


def _to_search_result(item: dict[str, Any]) -> SearchResult | None:
    url = item.get("url") or item.get("link")
    if not url:
        return None
    return SearchResult(
        url=url,
        title=item.get("title") or "",
        snippet=item.get("snippet") or item.get("description") or "",
    )
