"""Team slug derivation."""

import re

_INVALID_CHARS = re.compile(r"[^a-z0-9\- ]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-{2,}")


def slugify(name: str) -> str:
    """Derive the GitHub team slug for a team name.

    Lowercases the name, drops everything outside ``[a-z0-9- ]``, turns runs
    of spaces into a hyphen, collapses repeated hyphens and trims hyphens
    from both ends. ``"My Team!!"`` becomes ``"my-team"``.

    Args:
        name: Declared team name

    Returns:
        Slug, possibly empty when the name has no usable characters
    """
    slug = _INVALID_CHARS.sub("", name.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug.strip("-")
