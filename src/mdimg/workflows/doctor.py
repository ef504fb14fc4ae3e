from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .fetcher_config import RunConfig, env_overrides


def _check_writable(path: Path) -> bool:
    try:
        if path.exists():
            return path.is_dir() and os.access(path, os.W_OK)
        # walk up to the first existing ancestor; mkdir -p would start there
        for parent in path.parents:
            if parent.exists():
                return os.access(parent, os.W_OK)
        return False
    except OSError:
        return False


def build_doctor_report(config: RunConfig) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "checks": [],
        "env_overrides": env_overrides(),
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
        failure: str = "fail",
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else failure,
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    root = config.input_root
    add_check(
        "input_root",
        root.is_dir(),
        detail=str(root),
        remedy="Pass --input or set MDIMG_INPUT to an existing directory.",
        failure="missing" if not root.exists() else "not a directory",
    )
    add_check(
        "output_dir",
        _check_writable(config.output_dir),
        detail=str(config.output_dir),
        remedy="Create the directory or point --output-dir / MDIMG_OUTPUT_DIR somewhere writable.",
        failure="not writable",
    )
    add_check(
        "link_prefix",
        bool(config.link_prefix),
        detail=repr(config.link_prefix),
        remedy="An empty prefix yields bare filenames as links.",
        level="info",
        failure="empty",
    )
    add_check(
        "concurrency",
        config.concurrency <= 256,
        detail=str(config.concurrency),
        remedy="Very high concurrency tends to trip remote rate limits.",
        level="info",
        failure="high",
    )
    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("mdimg doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        lines.append(f"- [{level}] {name}: {status}")
        detail = check.get("detail")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy and status != "ok":
            lines.append(f"  remedy: {remedy}")
    overrides = report.get("env_overrides") or {}
    if overrides:
        lines.append("")
        lines.append("Environment overrides:")
        for name, value in sorted(overrides.items()):
            lines.append(f"- {name}={value}")
    return "\n".join(lines).rstrip() + "\n"
