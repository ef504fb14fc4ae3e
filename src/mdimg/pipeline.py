from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .core.keys import (
    COUNT_KEYS,
    K_CONFIG,
    K_COUNTS,
    K_DOCUMENTS,
    K_DOCUMENTS_REWRITTEN,
    K_DOWNLOADED,
    K_DRY_RUN,
    K_DURATION_MS,
    K_FAILED,
    K_FAILURES,
    K_FINISHED_AT,
    K_OCCURRENCES,
    K_REWRITTEN_OCCURRENCES,
    K_STARTED_AT,
    K_UNRESOLVED_OCCURRENCES,
    K_URLS,
)
from .errors import DiscoveryError
from .workflows.documents import Document, load_documents, write_document
from .workflows.fetcher_config import RunConfig
from .workflows.markdown_refs import ImageRef, extract, iter_urls, rewrite_with_report
from .workflows.web_fetch import FetchConfig, FetchFunc, FetchOutcome, ImageFetcher

logger = logging.getLogger(__name__)


def _stamp(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def scan_documents(config: RunConfig) -> Tuple[List[Document], Set[str], List[ImageRef]]:
    """Read every document under the input root and collect its image embeds."""

    documents = load_documents(config.input_root, config.extensions)
    urls: Set[str] = set()
    occurrences: List[ImageRef] = []
    for document in documents:
        found, refs = extract(document.text, source=str(document.path))
        urls |= found
        occurrences.extend(refs)
    return documents, urls, occurrences


def build_fetch_config(config: RunConfig) -> FetchConfig:
    return FetchConfig(
        concurrency=config.concurrency,
        timeout=config.timeout,
        user_agent=config.user_agent,
    )


def _build_summary(
    config: RunConfig,
    started_at: datetime,
    finished_at: datetime,
    counts: Dict[str, int],
    outcomes: Sequence[FetchOutcome] = (),
    *,
    dry_run: bool = False,
    urls: Optional[List[str]] = None,
) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        K_STARTED_AT: _stamp(started_at),
        K_FINISHED_AT: _stamp(finished_at),
        K_DURATION_MS: int((finished_at - started_at).total_seconds() * 1000),
        K_DRY_RUN: dry_run,
        K_CONFIG: config.to_dict(),
        K_COUNTS: {key: int(counts.get(key, 0)) for key in COUNT_KEYS},
        K_FAILURES: [outcome.to_dict() for outcome in outcomes if not outcome.ok],
    }
    if urls is not None:
        summary[K_URLS] = urls
    return summary


def scan_only(config: RunConfig) -> Dict[str, Any]:
    """Report what a run would fetch without touching the network or any file."""

    started_at = datetime.now(timezone.utc)
    documents, urls, occurrences = scan_documents(config)
    logger.info("scanned %d links in %d markdown files", len(urls), len(documents))
    counts = {
        K_DOCUMENTS: len(documents),
        K_URLS: len(urls),
        K_OCCURRENCES: len(occurrences),
    }
    return _build_summary(
        config,
        started_at,
        datetime.now(timezone.utc),
        counts,
        dry_run=True,
        urls=list(iter_urls(occurrences)),
    )


def process_documents(config: RunConfig, *, fetch: Optional[FetchFunc] = None) -> Dict[str, Any]:
    """Download every remote image referenced under the input root and rewrite the documents.

    Discovery failures raise :class:`DiscoveryError` before anything is
    fetched. Per-URL failures only leave the affected embeds untouched.
    A :class:`WriteBackError` stops at the failing document; documents
    written before it stay written.
    """

    started_at = datetime.now(timezone.utc)
    documents, urls, occurrences = scan_documents(config)
    logger.info("scanned %d links in %d markdown files", len(urls), len(documents))
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DiscoveryError(f"unable to create output dir {config.output_dir}: {exc}") from exc

    fetcher = ImageFetcher(build_fetch_config(config), fetch=fetch)
    mapping = asyncio.run(fetcher.fetch_many(urls, config.output_dir, config.link_prefix))
    logger.info("downloaded %d of %d images", len(mapping), len(urls))

    replaced = 0
    unresolved = 0
    rewritten_docs = 0
    for document in documents:
        report = rewrite_with_report(document.text, mapping, source=str(document.path))
        replaced += report.replaced
        unresolved += len(report.unresolved)
        if report.text == document.text:
            continue
        write_document(document.path, report.text)
        rewritten_docs += 1
    logger.info(
        "rewrote %d markdown files (%d links replaced, %d left remote)",
        rewritten_docs,
        replaced,
        unresolved,
    )

    outcomes = fetcher.last_outcomes
    counts = {
        K_DOCUMENTS: len(documents),
        K_URLS: len(urls),
        K_DOWNLOADED: len(mapping),
        K_FAILED: sum(1 for outcome in outcomes if not outcome.ok),
        K_OCCURRENCES: len(occurrences),
        K_REWRITTEN_OCCURRENCES: replaced,
        K_UNRESOLVED_OCCURRENCES: unresolved,
        K_DOCUMENTS_REWRITTEN: rewritten_docs,
    }
    return _build_summary(config, started_at, datetime.now(timezone.utc), counts, outcomes)


def render_summary(summary: Dict[str, Any]) -> str:
    lines: List[str] = []
    config = summary.get(K_CONFIG) or {}
    title = "mdimg scan" if summary.get(K_DRY_RUN) else "mdimg run"
    lines.append(title)
    lines.append(f"input: {config.get('input_root')}")
    lines.append(f"output: {config.get('output_dir')} (links under {config.get('link_prefix')!r})")
    lines.append(f"duration: {summary.get(K_DURATION_MS)} ms")
    lines.append("")
    counts = summary.get(K_COUNTS) or {}
    for key in COUNT_KEYS:
        lines.append(f"{key:<24}{counts.get(key, 0):>8}")
    urls = summary.get(K_URLS) or []
    if urls:
        lines.append("")
        lines.append("urls:")
        for url in urls:
            lines.append(f"- {url}")
    failures = summary.get(K_FAILURES) or []
    if failures:
        lines.append("")
        lines.append("failures:")
        for item in failures:
            lines.append(f"- {item.get('url')}: {item.get('error')}")
    return "\n".join(lines).rstrip() + "\n"


__all__ = [
    "build_fetch_config",
    "process_documents",
    "render_summary",
    "scan_documents",
    "scan_only",
]
