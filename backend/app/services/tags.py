"""
Tag parsing shared by upload, update and list filtering
"""
from typing import Iterable, Optional, Tuple, Union


def normalize_tags(value: Optional[Union[str, Iterable[str]]]) -> Tuple[str, ...]:
    """
    Turn a comma-separated string or a list of strings into an ordered,
    de-duplicated tuple of lowercase trimmed tags. List items may themselves
    contain commas (repeated form fields such as ``tags=a,b&tags=c``).
    """
    if value is None:
        return ()

    items = [value] if isinstance(value, str) else list(value)

    tags = []
    seen = set()
    for item in items:
        if item is None:
            continue
        for part in str(item).split(","):
            tag = part.strip().lower()
            if tag and tag not in seen:
                seen.add(tag)
                tags.append(tag)
    return tuple(tags)
