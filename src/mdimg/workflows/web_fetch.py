from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import aiohttp

from ..errors import FetchError, MaterializeError
from .download_utils import compose_link, materialize
from .fetcher_config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT_SEC,
    USER_AGENT,
)

logger = logging.getLogger(__name__)

FetchFunc = Callable[[str], Awaitable[bytes]]


@dataclass
class FetchConfig:
    """Configuration parameters for asynchronous image fetching."""

    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT_SEC
    user_agent: str = USER_AGENT
    max_redirects: int = DEFAULT_MAX_REDIRECTS


@dataclass(frozen=True)
class FetchOutcome:
    """Terminal state of one fetch+save task."""

    url: str
    link: Optional[str] = None
    error: Optional[str] = None
    elapsed_ms: int = field(default=0, compare=False)

    @property
    def ok(self) -> bool:
        return self.link is not None

    def to_dict(self) -> Dict[str, Optional[str]]:
        payload: Dict[str, Optional[str]] = {"url": self.url}
        if self.ok:
            payload["link"] = self.link
        else:
            payload["error"] = self.error
        return payload


async def fetch_image(
    session: aiohttp.ClientSession,
    url: str,
    *,
    timeout: float,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> bytes:
    """GET ``url`` once and return the body; anything but HTTP 200 raises FetchError."""

    try:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=True,
            max_redirects=max_redirects,
        ) as resp:
            if resp.status != 200:
                raise FetchError(url, f"invalid status code: {resp.status}")
            return await resp.read()
    except asyncio.TimeoutError as exc:
        raise FetchError(url, f"timed out after {timeout}s") from exc
    except (aiohttp.ClientError, ValueError) as exc:
        raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc


class ImageFetcher:
    """Fetch every distinct URL once and save it under its hashed filename.

    At most ``config.concurrency`` fetch+save tasks are in flight at a time.
    Failures are recorded per URL and never abort the batch.
    """

    def __init__(self, config: FetchConfig, *, fetch: Optional[FetchFunc] = None) -> None:
        self.config = config
        self._fetch = fetch
        self.last_outcomes: List[FetchOutcome] = []

    async def fetch_many(
        self,
        urls: Iterable[str],
        output_dir: Path,
        link_prefix: str,
    ) -> Dict[str, str]:
        """Return ``{url: local link}`` for every URL that was fetched and saved."""

        unique = sorted(set(urls))
        self.last_outcomes = []
        if not unique:
            return {}
        semaphore = asyncio.Semaphore(self.config.concurrency)

        if self._fetch is not None:
            outcomes = await self._run_all(unique, self._fetch, semaphore, output_dir, link_prefix)
        else:
            connector = aiohttp.TCPConnector(limit=self.config.concurrency)
            headers = {"User-Agent": self.config.user_agent}
            async with aiohttp.ClientSession(connector=connector, headers=headers) as session:

                async def _session_fetch(url: str) -> bytes:
                    return await fetch_image(
                        session,
                        url,
                        timeout=self.config.timeout,
                        max_redirects=self.config.max_redirects,
                    )

                outcomes = await self._run_all(unique, _session_fetch, semaphore, output_dir, link_prefix)

        # Single writer: tasks only return outcomes, the mapping is built here
        results: Dict[str, str] = {}
        for outcome in outcomes:
            if outcome.ok:
                results[outcome.url] = outcome.link  # type: ignore[assignment]
                logger.debug("saved %s as %s in %d ms", outcome.url, outcome.link, outcome.elapsed_ms)
            else:
                logger.error("downloading image %s failed: %s", outcome.url, outcome.error)
        self.last_outcomes = outcomes
        return results

    async def _run_all(
        self,
        urls: List[str],
        fetch: FetchFunc,
        semaphore: asyncio.Semaphore,
        output_dir: Path,
        link_prefix: str,
    ) -> List[FetchOutcome]:
        tasks = [
            asyncio.create_task(self._fetch_entry(url, fetch, semaphore, output_dir, link_prefix))
            for url in urls
        ]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)
        outcomes: List[FetchOutcome] = []
        for url, item in zip(urls, gathered):
            if isinstance(item, BaseException):
                outcomes.append(FetchOutcome(url=url, error=f"{type(item).__name__}: {item}"))
            else:
                outcomes.append(item)
        return outcomes

    async def _fetch_entry(
        self,
        url: str,
        fetch: FetchFunc,
        semaphore: asyncio.Semaphore,
        output_dir: Path,
        link_prefix: str,
    ) -> FetchOutcome:
        async with semaphore:
            started = time.perf_counter()
            logger.info("downloading %s", url)
            try:
                data = await fetch(url)
                filename = materialize(output_dir, data, url)
            except FetchError as exc:
                return FetchOutcome(url=url, error=exc.reason, elapsed_ms=_elapsed_ms(started))
            except MaterializeError as exc:
                return FetchOutcome(url=url, error=str(exc), elapsed_ms=_elapsed_ms(started))
            return FetchOutcome(
                url=url,
                link=compose_link(link_prefix, filename),
                elapsed_ms=_elapsed_ms(started),
            )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = [
    "FetchConfig",
    "FetchFunc",
    "FetchOutcome",
    "ImageFetcher",
    "fetch_image",
]
