# app/wikipedia_service.py
import logging
import urllib.parse
from typing import Optional, Sequence

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .cache_service import SummaryCache
from .errors import UpstreamUnavailable
from .models import ArticleCandidate
from .util import wiki_page_url

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class WikipediaService:
    def __init__(
        self,
        user_agent: str = "TopicLessonAgent/1.0",
        languages: Sequence[str] = ("en",),
        summary_language: Optional[str] = None,
        timeout: float = 10.0,
        retries: int = 3,
        backoff: float = 0.5,
        cache: Optional[SummaryCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.headers = {"User-Agent": user_agent}
        self.languages = list(languages) or ["en"]
        self.summary_language = summary_language or self.languages[0]
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self.cache = cache
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
            follow_redirects=True,
        )

    async def _get(self, client: httpx.AsyncClient, url: str, params: Optional[dict] = None) -> httpx.Response:
        """GET with bounded exponential backoff on network errors and 429/5xx."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=self.backoff, max=8),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info("Retrying %s (attempt %d)", url, attempt.retry_state.attempt_number)
                    r = await client.get(url, params=params)
                    if r.status_code in RETRYABLE_STATUS:
                        raise _RetryableStatus(r)
                    return r
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"Wikipedia request timed out: {url}") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"Wikipedia request failed: {e}") from e
        except _RetryableStatus as e:
            raise UpstreamUnavailable(
                f"Wikipedia returned HTTP {e.response.status_code} for {url}"
            ) from e

    @staticmethod
    def _json(r: httpx.Response, what: str):
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Wikipedia {what} response is not JSON") from e

    async def search(self, term: str, limit: int = 20) -> list[ArticleCandidate]:
        """
        Full-text search of every configured wiki edition.
        Results keep the index order, duplicates by title are dropped and the
        list is capped at ``limit``. Zero hits yields an empty list.
        """
        results: list[ArticleCandidate] = []
        seen_titles = set()

        async with self._client() as client:
            for lang in self.languages:
                url = f"https://{lang}.wikipedia.org/w/rest.php/v1/search/page"
                r = await self._get(client, url, params={"q": term, "limit": limit})
                if r.status_code != 200:
                    raise UpstreamUnavailable(
                        f"Wikipedia search ({lang}) returned HTTP {r.status_code}"
                    )

                data = self._json(r, "search")
                pages = data.get("pages") if isinstance(data, dict) else None
                if not isinstance(pages, list):
                    raise UpstreamUnavailable(f"Wikipedia search ({lang}) response has no 'pages'")

                for page in pages:
                    if not isinstance(page, dict) or not page.get("title"):
                        raise UpstreamUnavailable(f"Wikipedia search ({lang}) returned a page without a title")

                    title = page["title"]
                    if title.casefold() in seen_titles:
                        continue
                    seen_titles.add(title.casefold())

                    results.append(
                        ArticleCandidate(
                            title=title,
                            description=page.get("description") or None,
                            url=wiki_page_url(lang, page.get("key") or title),
                            lang=lang,
                        )
                    )

        logger.debug("Search %r returned %d articles", term, len(results))
        return results[:limit]

    def _summary_from(self, data, lang: str) -> dict:
        if not isinstance(data, dict) or not data.get("title"):
            raise UpstreamUnavailable("Wikipedia summary response has no 'title'")
        page_url = data.get("content_urls", {}).get("desktop", {}).get("page")
        return {
            "title": data["title"],
            "extract": data.get("extract") or None,
            "url": page_url or wiki_page_url(lang, data["title"]),
        }

    async def fetch_summary(self, title: str, lang: Optional[str] = None) -> Optional[dict]:
        """
        Fetch the page summary for an exact title from the REST API.
        Returns {"title", "extract", "url"} or None when the page does not exist.
        """
        lang = lang or self.summary_language
        cache_key = SummaryCache.key(lang, title)
        if self.cache:
            cached = self.cache.get(cache_key)
            if cached:
                logger.debug("Summary cache hit for %r", title)
                return cached

        encoded = urllib.parse.quote(title.replace(" ", "_"), safe="")
        url = f"https://{lang}.wikipedia.org/api/rest_v1/page/summary/{encoded}"

        async with self._client() as client:
            r = await self._get(client, url)

        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise UpstreamUnavailable(f"Wikipedia summary returned HTTP {r.status_code} for {title!r}")

        summary = self._summary_from(self._json(r, "summary"), lang)
        if self.cache:
            self.cache.set(cache_key, summary)
        return summary

    async def fetch_random_summary(self, lang: Optional[str] = None) -> dict:
        lang = lang or self.summary_language
        url = f"https://{lang}.wikipedia.org/api/rest_v1/page/random/summary"

        async with self._client() as client:
            r = await self._get(client, url)

        if r.status_code != 200:
            raise UpstreamUnavailable(f"Wikipedia random summary returned HTTP {r.status_code}")
        return self._summary_from(self._json(r, "random summary"), lang)
