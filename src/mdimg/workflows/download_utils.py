"""Helpers for naming and persisting fetched images."""

from __future__ import annotations

import hashlib
import logging
import posixpath
from pathlib import Path
from typing import Optional

from ..errors import MaterializeError

logger = logging.getLogger(__name__)


def get_extension(url: str) -> Optional[str]:
    """Return the URL suffix from its last dot (dot included) if it is purely alphanumeric.

    ``.../foo.jpg?x=1`` and ``https://host/path`` yield ``None``: anything
    non-alphanumeric after the final dot disqualifies the suffix.

    "Alphanumeric" is :meth:`str.isalnum`, so letters and digits from any script
    count but combining marks (Unicode categories Mn and Mc) never do, including
    vowel signs such as U+093F that the Unicode Alphabetic property covers.
    """

    dot = url.rfind(".")
    if dot < 0:
        return None
    suffix = url[dot:]
    if all(ch.isalnum() for ch in suffix[1:]):
        return suffix
    return None


def hashed_filename(url: str) -> str:
    """Filename for ``url``: SHA-1 of the URL string plus the inferred extension."""

    name = hashlib.sha1(url.encode("utf-8")).hexdigest()
    ext = get_extension(url)
    if ext:
        name += ext
    return name


def compose_link(prefix: str, filename: str) -> str:
    return posixpath.join(prefix, filename)


def materialize(output_dir: Path, data: bytes, url: str) -> str:
    """Write ``data`` under the hashed name for ``url`` and return that bare filename.

    ``output_dir`` must already exist. An existing file with the same name is
    overwritten.
    """

    filename = hashed_filename(url)
    target = Path(output_dir) / filename
    logger.debug("saving %s -> %s", url, target)
    try:
        target.write_bytes(data)
    except OSError as exc:
        raise MaterializeError(f"unable to write {target}: {exc}") from exc
    return filename


__all__ = [
    "get_extension",
    "hashed_filename",
    "compose_link",
    "materialize",
]
