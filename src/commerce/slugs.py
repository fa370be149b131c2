"""URL slug generation for catalog entities."""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Derive a URL slug from a display name.

    Lower-cases the name, collapses every run of characters outside
    ``[a-z0-9]`` into a single dash and strips dashes at both ends.

    Example:
        >>> slugify("Ceramic Plant Pot - White")
        'ceramic-plant-pot-white'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")
