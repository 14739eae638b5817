"""URL normalization, short-code generation and slug validation helpers."""

import re

import validators
from nanoid import generate

from app.errors import BadRequestError

__all__ = [
    "ALPHABET",
    "RESERVED_SLUGS",
    "build_short_url",
    "generate_short_code",
    "normalize_url",
    "validate_custom_slug",
]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 64

# Paths owned by the app itself; a slug equal to one would be unreachable.
# /api/urls/resolve/stats would match the resolve route, not the stats route.
RESERVED_SLUGS = frozenset({"api", "health", "metrics", "docs", "redoc", "openapi.json", "resolve"})

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_url(raw: str) -> str:
    """Trim, default the scheme to https and validate an absolute http(s) URL.

    >>> normalize_url("  example.com ")
    'https://example.com'
    """
    value = (raw or "").strip()
    if not value:
        raise BadRequestError("URL is required")

    if value.startswith("//"):
        value = f"https:{value}"
    elif not _SCHEME_RE.match(value):
        value = f"https://{value}"

    scheme = value.split("://", 1)[0].lower()
    if scheme not in ("http", "https"):
        raise BadRequestError("Invalid URL format")
    if not validators.url(value):
        raise BadRequestError("Invalid URL format")
    return value


def generate_short_code(length: int) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


def validate_custom_slug(slug: str) -> str:
    if not SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH:
        raise BadRequestError(
            f"Custom slug must be between {SLUG_MIN_LENGTH} and {SLUG_MAX_LENGTH} characters"
        )
    if not SLUG_PATTERN.match(slug):
        raise BadRequestError("Custom slug may only contain letters, digits, '-' and '_'")
    if slug.lower() in RESERVED_SLUGS:
        raise BadRequestError(f"Custom slug '{slug}' is reserved")
    return slug


def build_short_url(base_url: str, short_code: str) -> str:
    return f"{base_url.rstrip('/')}/{short_code}"
