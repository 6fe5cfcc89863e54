"""
Keyed cache of workflow store responses owned by an editor session.

Keys are tuples such as ``("workflow", "wpid_123")`` or ``("workflows", 1)``;
``invalidate(("workflows",))`` drops every listing page at once.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, List, Optional, Tuple

from shared.logger import get_logger

logger = get_logger("workflow_editor.cache")

CacheKey = Tuple[Hashable, ...]


def workflow_key(workflow_permanent_id: str) -> CacheKey:
    return ("workflow", workflow_permanent_id)


def workflows_key(*parts: Hashable) -> CacheKey:
    return ("workflows", *parts)


class WorkflowQueryCache:
    """In-memory cache with prefix invalidation. Not thread-safe."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Any] = {}

    def get(self, key: CacheKey) -> Optional[Any]:
        return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def invalidate(self, prefix: CacheKey) -> int:
        """Drop every entry whose key starts with *prefix*; returns how many were dropped."""
        stale = [key for key in self._entries if key[: len(prefix)] == prefix]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), prefix)
        return len(stale)


__all__ = ["CacheKey", "WorkflowQueryCache", "workflow_key", "workflows_key"]
