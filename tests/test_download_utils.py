from pathlib import Path

import pytest

from mdimg.errors import MaterializeError
from mdimg.workflows.download_utils import compose_link, get_extension, hashed_filename, materialize


@pytest.mark.parametrize(
    "url, expected",
    [
        ("foo/bar.jpg", ".jpg"),
        ("foo/bar.jpg?x=1", None),
        ("foo/bar", None),
        ("https://example.com/image", None),
        ("https://i.v2ex.co/R7yApIA5s.jpeg", ".jpeg"),
        ("https://x/a.tar.gz", ".gz"),
        ("https://x/a.caf\u00e9", ".caf\u00e9"),
        ("https://x/a.\u0915\u093f", None),
    ],
)
def test_get_extension(url, expected):
    assert get_extension(url) == expected


def test_hashed_filename_matches_known_digest():
    assert hashed_filename("https://i.v2ex.co/R7yApIA5s.jpeg") == "e3d093edf299313347493eed24e85330ea22eafc.jpeg"


def test_hashed_filename_without_extension():
    name = hashed_filename("https://example.com/image")
    assert len(name) == 40
    assert "." not in name


def test_materialize_is_idempotent_in_name(tmp_path: Path):
    url = "http://x/a.png"
    first = materialize(tmp_path, b"one", url)
    second = materialize(tmp_path, b"two", url)

    assert first == second == "14ce3f009a52da63734b550c318bad6a2219c164.png"
    assert (tmp_path / first).read_bytes() == b"two"


def test_materialize_missing_dir_raises(tmp_path: Path):
    with pytest.raises(MaterializeError):
        materialize(tmp_path / "missing", b"data", "http://x/a.png")


def test_compose_link_joins_posix_style():
    assert compose_link("/images", "abc.png") == "/images/abc.png"
    assert compose_link("/images/", "abc.png") == "/images/abc.png"
    assert compose_link("", "abc.png") == "abc.png"
