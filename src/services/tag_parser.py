"""Parsing of free-text tag input."""


def normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize a list of tags: trimmed, lowercase, empty entries dropped.

    Order is preserved and repeated tags are kept.
    """
    normalized = []
    for tag in tags:
        trimmed = tag.strip().lower()
        if trimmed:
            normalized.append(trimmed)
    return normalized


def parse_tags(raw: str | None) -> list[str]:
    """
    Turn a comma-separated tag string into an ordered list of tags.

    ``"Work, Tools ,work"`` parses to ``["work", "tools", "work"]``.
    """
    if not raw:
        return []
    return normalize_tags(raw.split(","))
