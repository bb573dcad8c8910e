import re
from typing import Awaitable, Callable

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    slug = _NON_SLUG.sub("-", value.lower()).strip("-")
    return slug or "item"


async def unique_slug(base: str, exists: Callable[[str], Awaitable[bool]]) -> str:
    """Return base, or base-2, base-3, ... for the first slug not yet taken."""
    slug = slugify(base)
    candidate = slug
    counter = 2
    while await exists(candidate):
        candidate = f"{slug}-{counter}"
        counter += 1
    return candidate
