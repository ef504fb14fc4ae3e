from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from dotenv import load_dotenv

from .core.keys import K_COUNTS, K_FAILED
from .errors import DiscoveryError, WriteBackError
from .pipeline import process_documents, render_summary, scan_only
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.fetcher_config import RunConfig, load_run_config

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Localize remote Markdown images.")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def _resolve_config(
    input_root: Optional[Path],
    output_dir: Optional[Path],
    link_prefix: Optional[str],
    timeout_sec: Optional[float],
    concurrency: Optional[int],
    ext: Optional[List[str]],
) -> RunConfig:
    try:
        return load_run_config(
            input_root=input_root,
            output_dir=output_dir,
            link_prefix=link_prefix,
            timeout=timeout_sec,
            concurrency=concurrency,
            extensions=tuple(ext) if ext else None,
        )
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)


def _emit(summary: Dict[str, Any], json_out: bool) -> None:
    if json_out:
        sys.stdout.write(json.dumps(summary, ensure_ascii=False) + "\n")
    else:
        typer.echo(render_summary(summary), nl=False)


@app.callback()
def main() -> None:
    """Download remote images referenced by Markdown files and point the links at local copies."""
    load_dotenv()


@app.command("run")
def run_cmd(
    input_root: Optional[Path] = typer.Option(None, "--input", "-i", help="Root directory searched for documents. [default: source]"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory the images are saved to. [default: public/images]"),
    link_prefix: Optional[str] = typer.Option(None, "--link-prefix", "-l", help="Prefix of the rewritten links. [default: /images]"),
    timeout_sec: Optional[float] = typer.Option(None, "--timeout-sec", "-t", help="Per-request timeout in seconds. [default: 60]"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Maximum in-flight downloads. [default: 50]"),
    ext: Optional[List[str]] = typer.Option(None, "--ext", help="Document suffix to scan (repeatable). [default: .md]"),
    json_out: bool = typer.Option(False, "--json", help="Print the run summary as JSON on stdout."),
    strict: bool = typer.Option(False, "--strict", help="Exit 3 when any image failed to download."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only scan and list URLs; no downloads, no rewrites."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Download images and rewrite the documents in place."""
    _configure_logging(verbose)
    config = _resolve_config(input_root, output_dir, link_prefix, timeout_sec, concurrency, ext)
    logging.getLogger(__name__).info(
        "downloading images for documents in %s to %s with link prefix %s, timeout %ss",
        config.input_root,
        config.output_dir,
        config.link_prefix,
        config.timeout,
    )
    try:
        summary = scan_only(config) if dry_run else process_documents(config)
    except DiscoveryError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    except WriteBackError as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)
    _emit(summary, json_out)
    failed = (summary.get(K_COUNTS) or {}).get(K_FAILED, 0)
    raise typer.Exit(code=3 if strict and failed else 0)


@app.command("scan")
def scan_cmd(
    input_root: Optional[Path] = typer.Option(None, "--input", "-i", help="Root directory searched for documents."),
    ext: Optional[List[str]] = typer.Option(None, "--ext", help="Document suffix to scan (repeatable)."),
    json_out: bool = typer.Option(False, "--json", help="Print the scan summary as JSON on stdout."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List the remote image URLs a run would download."""
    _configure_logging(verbose)
    config = _resolve_config(input_root, None, None, None, None, ext)
    try:
        summary = scan_only(config)
    except DiscoveryError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    _emit(summary, json_out)


@app.command("doctor")
def doctor_cmd(
    input_root: Optional[Path] = typer.Option(None, "--input", "-i", help="Root directory searched for documents."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory the images are saved to."),
) -> None:
    """Print configuration diagnostics."""
    config = _resolve_config(input_root, output_dir, None, None, None, None)
    report = build_doctor_report(config)
    typer.echo(format_doctor_report(report), nl=False)
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


if __name__ == "__main__":
    app()
