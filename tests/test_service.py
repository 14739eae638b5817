"""Unit tests for URL normalization, short-code generation and slug rules."""

import pytest

from app.config import get_settings
from app.errors import BadRequestError
from app.url_utils import ALPHABET, build_short_url, generate_short_code, normalize_url, validate_custom_slug

settings = get_settings()


def test_generate_short_code_default_length() -> None:
    code = generate_short_code(settings.SHORT_CODE_LENGTH)
    assert len(code) == settings.SHORT_CODE_LENGTH == 7


def test_generate_short_code_custom_length() -> None:
    code = generate_short_code(length=10)
    assert len(code) == 10


def test_generate_short_code_only_alphanumeric() -> None:
    for _ in range(100):
        code = generate_short_code(7)
        assert all(c in ALPHABET for c in code)


def test_generate_short_code_uniqueness() -> None:
    codes = {generate_short_code(7) for _ in range(1000)}
    # With 62^7 possibilities, 1000 codes should all be unique
    assert len(codes) == 1000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("example.com", "https://example.com"),
        ("  https://example.com/a?b=c  ", "https://example.com/a?b=c"),
        ("http://example.com", "http://example.com"),
        ("//cdn.example.com/lib.js", "https://cdn.example.com/lib.js"),
        ("www.python.org/downloads/", "https://www.python.org/downloads/"),
    ],
)
def test_normalize_url(raw: str, expected: str) -> None:
    assert normalize_url(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "not a url", "ftp://example.com", "javascript:alert(1)", "https://"])
def test_normalize_url_rejects(raw: str) -> None:
    with pytest.raises(BadRequestError):
        normalize_url(raw)


def test_validate_custom_slug_accepts() -> None:
    assert validate_custom_slug("my_link-2024") == "my_link-2024"


@pytest.mark.parametrize("slug", ["ab", "x" * 65, "has space", "emoji🙂", "docs", "Metrics", "Resolve"])
def test_validate_custom_slug_rejects(slug: str) -> None:
    with pytest.raises(BadRequestError):
        validate_custom_slug(slug)


def test_build_short_url_strips_trailing_slash() -> None:
    assert build_short_url("https://sho.rt/", "abc1234") == "https://sho.rt/abc1234"
    assert build_short_url("https://sho.rt", "abc1234") == "https://sho.rt/abc1234"
