"""
Allow/block glob filtering of tool and prompt names.
"""

from fnmatch import fnmatchcase
from typing import Iterable, List, Optional, Sequence, TypeVar

from mcpmux.config import MCPFilterConfig

T = TypeVar("T")


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """Whether the full name matches at least one case-sensitive glob pattern."""
    return any(fnmatchcase(name, pattern) for pattern in patterns)


def passes(name: str, filter_config: Optional[MCPFilterConfig]) -> bool:
    """
    Decide whether a tool or prompt name is exposed.

    Block patterns are checked first and reject on any match. If allow patterns
    are configured the name must then match one of them. A missing config or an
    empty pattern list places no restriction.
    """
    if filter_config is None:
        return True
    if filter_config.block and matches_any(name, filter_config.block):
        return False
    if filter_config.allow:
        return matches_any(name, filter_config.allow)
    return True


def filter_items(items: Sequence[T], filter_config: Optional[MCPFilterConfig]) -> List[T]:
    """Keep the items whose ``name`` passes the filter, preserving order."""
    if filter_config is None:
        return list(items)
    return [item for item in items if passes(item.name, filter_config)]
