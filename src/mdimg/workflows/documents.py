"""Document discovery, exact-byte reads and in-place write-back."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from ..errors import DiscoveryError, WriteBackError
from .fetcher_config import DEFAULT_EXTENSIONS, normalize_extensions

logger = logging.getLogger(__name__)


@dataclass
class Document:
    path: Path
    text: str


def discover_documents(root: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> List[Path]:
    """Return every file under ``root`` whose suffix matches ``extensions`` (case-insensitive)."""

    root = Path(root)
    if not root.exists():
        raise DiscoveryError(f"input root not found: {root}")
    if not root.is_dir():
        raise DiscoveryError(f"input root is not a directory: {root}")
    wanted = set(normalize_extensions(extensions))
    try:
        found = [
            path
            for path in root.rglob("*")
            if path.suffix.lower() in wanted and path.is_file()
        ]
    except OSError as exc:
        raise DiscoveryError(f"unable to walk {root}: {exc}") from exc
    return sorted(found)


def read_document(path: Path) -> Document:
    # bytes in, bytes out: no newline translation
    try:
        text = Path(path).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DiscoveryError(f"unable to read {path}: {exc}") from exc
    return Document(path=Path(path), text=text)


def load_documents(root: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> List[Document]:
    return [read_document(path) for path in discover_documents(root, extensions)]


def write_document(path: Path, text: str) -> None:
    try:
        Path(path).write_bytes(text.encode("utf-8"))
    except OSError as exc:
        raise WriteBackError(str(path), str(exc)) from exc
    logger.debug("rewrote %s", path)


__all__ = [
    "Document",
    "discover_documents",
    "read_document",
    "load_documents",
    "write_document",
]
