import hashlib
from pathlib import Path

import pytest

from mdimg import pipeline
from mdimg.errors import DiscoveryError, FetchError, WriteBackError
from mdimg.pipeline import process_documents, render_summary, scan_documents, scan_only
from mdimg.workflows.fetcher_config import RunConfig


def _fake_fetch(payloads, calls):
    async def fetch(url: str) -> bytes:
        calls.append(url)
        if url not in payloads:
            raise FetchError(url, "invalid status code: 500")
        return payloads[url]

    return fetch


def _config(tmp_path: Path, **kwargs) -> RunConfig:
    return RunConfig(input_root=tmp_path / "source", output_dir=tmp_path / "public" / "images", **kwargs)


@pytest.fixture
def source(tmp_path: Path) -> Path:
    root = tmp_path / "source"
    (root / "posts").mkdir(parents=True)
    return root


def test_end_to_end_partial_failure(tmp_path: Path, source: Path):
    ok_url = "http://cdn.example.com/ok.png"
    bad_url = "http://cdn.example.com/bad.png"
    (source / "one.md").write_text(f"# One\n\n![ok]({ok_url})\n", encoding="utf-8")
    (source / "posts" / "two.md").write_text(
        f'Two\n![ok again]({ok_url} "Title")\ntext ![bad]({bad_url}) end\n',
        encoding="utf-8",
    )
    calls = []
    config = _config(tmp_path)

    summary = process_documents(config, fetch=_fake_fetch({ok_url: b"image-bytes"}, calls))

    filename = hashlib.sha1(ok_url.encode("utf-8")).hexdigest() + ".png"
    link = f"/images/{filename}"
    assert sorted(calls) == [bad_url, ok_url]
    assert (config.output_dir / filename).read_bytes() == b"image-bytes"
    assert (source / "one.md").read_text(encoding="utf-8") == f"# One\n\n![ok]({link})\n"
    assert (source / "posts" / "two.md").read_text(encoding="utf-8") == (
        f'Two\n![ok again]({link} "Title")\ntext ![bad]({bad_url}) end\n'
    )
    counts = summary["counts"]
    assert counts["documents"] == 2
    assert counts["urls"] == 2
    assert counts["downloaded"] == 1
    assert counts["failed"] == 1
    assert counts["occurrences"] == 3
    assert counts["rewritten_occurrences"] == 2
    assert counts["unresolved_occurrences"] == 1
    assert counts["documents_rewritten"] == 2
    assert summary["failures"] == [{"url": bad_url, "error": "invalid status code: 500"}]


def test_same_url_in_two_documents_fetched_once(tmp_path: Path, source: Path):
    url = "https://img.example.com/cat.png"
    (source / "a.md").write_text(f"![cat]({url})", encoding="utf-8")
    (source / "b.md").write_text(f"![also cat]({url})", encoding="utf-8")
    calls = []

    process_documents(_config(tmp_path), fetch=_fake_fetch({url: b"meow"}, calls))

    assert calls == [url]
    expected = "/images/6276991670b46764db13c2ae8e73022f06d63ffe.png"
    assert (source / "a.md").read_text(encoding="utf-8") == f"![cat]({expected})"
    assert (source / "b.md").read_text(encoding="utf-8") == f"![also cat]({expected})"


def test_rerun_is_stable(tmp_path: Path, source: Path):
    url = "https://img.example.com/cat.png"
    doc = source / "a.md"
    doc.write_text(f"![cat]({url})", encoding="utf-8")
    calls = []
    config = _config(tmp_path)

    process_documents(config, fetch=_fake_fetch({url: b"meow"}, calls))
    first = doc.read_text(encoding="utf-8")
    summary = process_documents(config, fetch=_fake_fetch({url: b"meow"}, calls))

    assert doc.read_text(encoding="utf-8") == first
    assert summary["counts"]["urls"] == 0
    assert summary["counts"]["documents_rewritten"] == 0


def test_unchanged_documents_are_not_rewritten(tmp_path: Path, source: Path):
    plain = source / "plain.md"
    plain.write_text("nothing remote ![x](local.png)\n", encoding="utf-8")
    before = plain.stat().st_mtime_ns

    summary = process_documents(_config(tmp_path), fetch=_fake_fetch({}, []))

    assert plain.stat().st_mtime_ns == before
    assert summary["counts"]["documents"] == 1
    assert summary["counts"]["documents_rewritten"] == 0


def test_write_back_failure_keeps_earlier_documents(monkeypatch, tmp_path: Path, source: Path):
    url = "https://img.example.com/cat.png"
    first = source / "a.md"
    second = source / "b.md"
    first.write_text(f"![cat]({url})", encoding="utf-8")
    second.write_text(f"![also cat]({url})", encoding="utf-8")
    written = []
    real_write = pipeline.write_document

    def flaky_write(path, text):
        if path == second:
            raise WriteBackError(str(path), "read-only file system")
        real_write(path, text)
        written.append(path)

    monkeypatch.setattr(pipeline, "write_document", flaky_write)

    with pytest.raises(WriteBackError) as info:
        process_documents(_config(tmp_path), fetch=_fake_fetch({url: b"meow"}, []))

    assert str(second) in str(info.value)
    assert written == [first]
    expected = "/images/6276991670b46764db13c2ae8e73022f06d63ffe.png"
    assert first.read_text(encoding="utf-8") == f"![cat]({expected})"
    assert second.read_text(encoding="utf-8") == f"![also cat]({url})"


def test_missing_input_root_is_fatal(tmp_path: Path):
    calls = []
    with pytest.raises(DiscoveryError):
        process_documents(_config(tmp_path), fetch=_fake_fetch({}, calls))
    assert calls == []


def test_scan_only_lists_urls_without_side_effects(tmp_path: Path, source: Path):
    text = "![a](http://x/1.png)\n![b](http://x/2.png)\n![c](http://x/1.png)\n"
    (source / "a.md").write_text(text, encoding="utf-8")
    config = _config(tmp_path)

    summary = scan_only(config)

    assert summary["dry_run"] is True
    assert summary["urls"] == ["http://x/1.png", "http://x/2.png"]
    assert summary["counts"]["occurrences"] == 3
    assert not config.output_dir.exists()
    assert (source / "a.md").read_text(encoding="utf-8") == text


def test_scan_documents_tracks_sources(tmp_path: Path, source: Path):
    (source / "a.md").write_text("![a](http://x/1.png)", encoding="utf-8")
    documents, urls, occurrences = scan_documents(_config(tmp_path))
    assert len(documents) == 1
    assert urls == {"http://x/1.png"}
    assert occurrences[0].source == str(source / "a.md")


def test_render_summary_lists_failures():
    summary = {
        "duration_ms": 12,
        "dry_run": False,
        "config": {"input_root": "source", "output_dir": "public/images", "link_prefix": "/images"},
        "counts": {"documents": 2, "urls": 2, "downloaded": 1, "failed": 1},
        "failures": [{"url": "http://x/bad.png", "error": "invalid status code: 404"}],
    }
    output = render_summary(summary)
    assert output.startswith("mdimg run")
    assert "downloaded" in output
    assert "- http://x/bad.png: invalid status code: 404" in output
