"""mdimg defaults (paths, headers, limits) and run configuration.

Centralizes static defaults so the workflow modules have no embedded magic
strings. Values resolve in three layers: the constants below, then ``MDIMG_*``
environment variables (a ``.env`` file is honoured by the CLI), then explicit
overrides passed by the caller.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Paths / link layout
DEFAULT_INPUT = "source"
DEFAULT_OUTPUT_DIR = "public/images"
DEFAULT_LINK_PREFIX = "/images"
DEFAULT_EXTENSIONS: Tuple[str, ...] = (".md",)

# Fetch limits
DEFAULT_TIMEOUT_SEC = 60.0
DEFAULT_CONCURRENCY = 50
DEFAULT_MAX_REDIRECTS = 10

# Headers
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/94.0.4606.81 Safari/537.36"
)

# Environment variable names
ENV_INPUT = "MDIMG_INPUT"
ENV_OUTPUT_DIR = "MDIMG_OUTPUT_DIR"
ENV_LINK_PREFIX = "MDIMG_LINK_PREFIX"
ENV_TIMEOUT_SEC = "MDIMG_TIMEOUT_SEC"
ENV_CONCURRENCY = "MDIMG_CONCURRENCY"
ENV_EXTENSIONS = "MDIMG_EXTENSIONS"
ENV_USER_AGENT = "MDIMG_USER_AGENT"

ENV_VARS = (
    ENV_INPUT,
    ENV_OUTPUT_DIR,
    ENV_LINK_PREFIX,
    ENV_TIMEOUT_SEC,
    ENV_CONCURRENCY,
    ENV_EXTENSIONS,
    ENV_USER_AGENT,
)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name, "")
    return raw.strip() or default


def _env_int(name: str, default: int = 0) -> int:
    try:
        raw = os.getenv(name, "")
        return int(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float = 0.0) -> float:
    try:
        raw = os.getenv(name, "")
        return float(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def normalize_extensions(values) -> Tuple[str, ...]:
    """Lowercase document suffixes and make sure each carries a leading dot."""

    out = []
    for value in values or ():
        token = str(value).strip().lower()
        if not token:
            continue
        if not token.startswith("."):
            token = f".{token}"
        if token not in out:
            out.append(token)
    return tuple(out) or DEFAULT_EXTENSIONS


@dataclass
class RunConfig:
    """Everything one localization run needs, as plain parameters."""

    input_root: Path = field(default_factory=lambda: Path(DEFAULT_INPUT))
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR))
    link_prefix: str = DEFAULT_LINK_PREFIX
    timeout: float = DEFAULT_TIMEOUT_SEC
    concurrency: int = DEFAULT_CONCURRENCY
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        self.input_root = Path(self.input_root)
        self.output_dir = Path(self.output_dir)
        self.extensions = normalize_extensions(self.extensions)
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1 (got {self.concurrency})")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive (got {self.timeout})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_root": str(self.input_root),
            "output_dir": str(self.output_dir),
            "link_prefix": self.link_prefix,
            "timeout": self.timeout,
            "concurrency": self.concurrency,
            "extensions": list(self.extensions),
        }


def load_run_config(**overrides: Any) -> RunConfig:
    """Build a RunConfig from env vars, then apply non-None keyword overrides."""

    raw_exts = os.getenv(ENV_EXTENSIONS, "")
    extensions = tuple(part for part in raw_exts.split(",") if part.strip()) or DEFAULT_EXTENSIONS
    values: Dict[str, Any] = {
        "input_root": Path(_env_str(ENV_INPUT, DEFAULT_INPUT)),
        "output_dir": Path(_env_str(ENV_OUTPUT_DIR, DEFAULT_OUTPUT_DIR)),
        "link_prefix": os.getenv(ENV_LINK_PREFIX, DEFAULT_LINK_PREFIX),
        "timeout": _env_float(ENV_TIMEOUT_SEC, DEFAULT_TIMEOUT_SEC),
        "concurrency": _env_int(ENV_CONCURRENCY, DEFAULT_CONCURRENCY),
        "extensions": extensions,
        "user_agent": _env_str(ENV_USER_AGENT, USER_AGENT),
    }
    # overrides land before RunConfig validates
    values.update({key: value for key, value in overrides.items() if value is not None})
    return RunConfig(**values)


def env_overrides() -> Dict[str, Optional[str]]:
    """Return the MDIMG_* variables currently set (used by doctor)."""

    return {name: os.getenv(name) for name in ENV_VARS if os.getenv(name)}
