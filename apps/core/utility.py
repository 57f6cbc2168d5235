from __future__ import annotations

from typing import Any, Type

from django.utils.text import slugify


def parse_int(value: object, default: int) -> int:
    """Safe int parse with default fallback."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def is_present(val: Any) -> bool:
    """Uniform presence check used by required-answer validation."""
    if val is None:
        return False
    if isinstance(val, str):
        return bool(val.strip())
    if isinstance(val, (list, dict)):
        return len(val) > 0
    return True


def unique_slug_for_code(model: Type, base: str, code_field: str = "code") -> str:
    """Generate a unique, URL-safe code using base and numeric suffix if needed."""
    base = slugify(base) or "survey"
    candidate = base
    i = 1
    exists = model.objects.filter(**{code_field: candidate}).exists()
    while exists:
        i += 1
        candidate = f"{base}-{i}"
        exists = model.objects.filter(**{code_field: candidate}).exists()
    return candidate
