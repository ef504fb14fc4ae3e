"""High-level exports for the mdimg workflows."""

from .documents import Document, discover_documents, load_documents, read_document, write_document
from .download_utils import compose_link, get_extension, hashed_filename, materialize
from .fetcher_config import RunConfig, load_run_config
from .markdown_refs import ImageRef, RewriteReport, extract, rewrite, rewrite_with_report, scan_images
from .web_fetch import FetchConfig, FetchOutcome, ImageFetcher, fetch_image

__all__ = [
    "Document",
    "FetchConfig",
    "FetchOutcome",
    "ImageFetcher",
    "ImageRef",
    "RewriteReport",
    "RunConfig",
    "compose_link",
    "discover_documents",
    "extract",
    "fetch_image",
    "get_extension",
    "hashed_filename",
    "load_documents",
    "load_run_config",
    "materialize",
    "read_document",
    "rewrite",
    "rewrite_with_report",
    "scan_images",
    "write_document",
]
