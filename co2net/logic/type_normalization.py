"""Map user-facing block type names onto schema type names.

``"capture unit"``, ``"capture_unit"`` and ``"CaptureUnit"`` all name the
``CaptureUnit`` schema.
"""

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s_-]+")

# Explicit spellings that the generic rule gets wrong. Keys match case-insensitively.
TYPE_OVERRIDES: dict[str, str] = {}


def normalize_block_type(user_type: str) -> str:
    """PascalCase a block type name.

    Names that are already mixed case without separators keep their casing
    (only the first letter is upper-cased); everything else is split on
    whitespace, underscores and hyphens and each word capitalized.
    """
    if not _SEPARATORS.search(user_type) and re.search(r"[a-z]", user_type) and re.search(r"[A-Z]", user_type):
        return user_type[:1].upper() + user_type[1:]
    words = [w for w in _SEPARATORS.split(user_type) if w]
    return "".join(w[:1].upper() + w[1:].lower() for w in words)


def normalize_block_type_with_overrides(user_type: str,
                                        overrides: Optional[dict[str, str]] = None) -> str:
    """Like ``normalize_block_type`` but consults an override table first."""
    table = TYPE_OVERRIDES if overrides is None else overrides
    trimmed = user_type.strip()
    if trimmed in table:
        return table[trimmed]
    lowered = trimmed.lower()
    for key, value in table.items():
        if key.lower() == lowered:
            return value
    return normalize_block_type(trimmed)


def denormalize_block_type(type_name: str) -> str:
    """``"CaptureUnit"`` -> ``"Capture Unit"``."""
    return re.sub(r"([A-Z])", r" \1", type_name).strip()
