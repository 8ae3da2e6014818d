"""File name slugs for generated manifests."""

import re

_DISALLOWED = re.compile(r"[^a-z0-9 ]")


def manifest_slug(name: str) -> str:
    """Turn a bot display name into a file-system safe slug.

    Rules:
    - lowercase everything
    - drop every character that is not a letter, digit or space
    - spaces → hyphens

    Examples:
        >>> manifest_slug("Magic Woodcutter")
        'magic-woodcutter'
        >>> manifest_slug("Bob's Fisher v2!")
        'bobs-fisher-v2'
    """
    if not name:
        return name

    slug = _DISALLOWED.sub("", name.lower())
    return slug.replace(" ", "-")


def manifest_file_name(name: str, extension: str) -> str:
    return f"{manifest_slug(name)}.manifest.{extension}"
