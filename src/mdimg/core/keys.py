"""Shared summary keys to avoid magic strings across mdimg modules."""

from __future__ import annotations

# Run summary
K_STARTED_AT = "started_at"
K_FINISHED_AT = "finished_at"
K_DURATION_MS = "duration_ms"
K_CONFIG = "config"
K_COUNTS = "counts"
K_FAILURES = "failures"
K_URLS = "urls"
K_DRY_RUN = "dry_run"

# Count keys
K_DOCUMENTS = "documents"
K_DOWNLOADED = "downloaded"
K_FAILED = "failed"
K_OCCURRENCES = "occurrences"
K_REWRITTEN_OCCURRENCES = "rewritten_occurrences"
K_UNRESOLVED_OCCURRENCES = "unresolved_occurrences"
K_DOCUMENTS_REWRITTEN = "documents_rewritten"

COUNT_KEYS = (
    K_DOCUMENTS,
    K_URLS,
    K_DOWNLOADED,
    K_FAILED,
    K_OCCURRENCES,
    K_REWRITTEN_OCCURRENCES,
    K_UNRESOLVED_OCCURRENCES,
    K_DOCUMENTS_REWRITTEN,
)
