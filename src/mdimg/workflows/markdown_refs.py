"""Locate Markdown image embeds and substitute their URLs in place.

Extraction and rewriting share :func:`scan_images`, so both always agree on
where a construct starts and ends and which slice of it is the URL.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Mapping, Optional, Set, Tuple

logger = logging.getLogger(__name__)

# ![alt](http... optional trailing text) -- only the first http token is the URL
IMAGE_EMBED_RE = re.compile(r"!\[.*?\]\((http[^\s)]*)\s*.*?\)")


@dataclass(frozen=True)
class ImageRef:
    """One image embed found in a document.

    ``start``/``end`` bound the whole construct, ``url_start``/``url_end`` the
    URL inside it. Offsets index the decoded document text.
    """

    url: str
    start: int
    end: int
    url_start: int
    url_end: int
    source: Optional[str] = None


@dataclass(frozen=True)
class RewriteReport:
    text: str
    replaced: int
    unresolved: List[str]


def scan_images(text: str, source: Optional[str] = None) -> Iterator[ImageRef]:
    """Yield every image embed in ``text`` in document order."""

    for match in IMAGE_EMBED_RE.finditer(text):
        yield ImageRef(
            url=match.group(1),
            start=match.start(),
            end=match.end(),
            url_start=match.start(1),
            url_end=match.end(1),
            source=source,
        )


def extract(text: str, source: Optional[str] = None) -> Tuple[Set[str], List[ImageRef]]:
    """Return the distinct URLs of ``text`` and every occurrence referencing them."""

    occurrences = list(scan_images(text, source))
    return {ref.url for ref in occurrences}, occurrences


def collect_urls(text: str, urls: Set[str]) -> Set[str]:
    """Add the URLs found in ``text`` to a caller-owned batch set."""

    for ref in scan_images(text):
        urls.add(ref.url)
    return urls


def rewrite_with_report(
    text: str,
    mapping: Mapping[str, str],
    source: Optional[str] = None,
) -> RewriteReport:
    """Substitute resolved URLs and report how many embeds could not be resolved."""

    pieces: List[str] = []
    cursor = 0
    replaced = 0
    unresolved: List[str] = []
    for ref in scan_images(text, source):
        pieces.append(text[cursor:ref.start])
        link = mapping.get(ref.url)
        if link is None:
            # keep the remote link
            pieces.append(text[ref.start:ref.end])
            unresolved.append(ref.url)
            logger.warning("no local copy for %s%s", ref.url, f" in {source}" if source else "")
        else:
            pieces.append(text[ref.start:ref.url_start])
            pieces.append(link)
            pieces.append(text[ref.url_end:ref.end])
            replaced += 1
        cursor = ref.end
    pieces.append(text[cursor:])
    return RewriteReport(text="".join(pieces), replaced=replaced, unresolved=unresolved)


def rewrite(text: str, mapping: Mapping[str, str], source: Optional[str] = None) -> str:
    """Return ``text`` with every resolved image URL replaced by its local link."""

    return rewrite_with_report(text, mapping, source).text


def iter_urls(refs: Iterable[ImageRef]) -> Iterator[str]:
    seen: Set[str] = set()
    for ref in refs:
        if ref.url in seen:
            continue
        seen.add(ref.url)
        yield ref.url


__all__ = [
    "IMAGE_EMBED_RE",
    "ImageRef",
    "RewriteReport",
    "scan_images",
    "extract",
    "collect_urls",
    "rewrite",
    "rewrite_with_report",
    "iter_urls",
]
