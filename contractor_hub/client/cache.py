# contractor_hub/client/cache.py
import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class ResponseCache:
    """
    Read-through cache keyed by resource path (e.g. "/api/jobs/3/files").

    Mutations call invalidate(); entries are dropped, never merged, and the
    next read() goes back to the loader. A failed load caches nothing.
    """

    def __init__(self, loader: Callable[[str], Any]):
        self._loader = loader
        self._entries: Dict[str, Any] = {}

    def read(self, key: str) -> Any:
        if key not in self._entries:
            self._entries[key] = self._loader(key)
        return self._entries[key]

    def invalidate(self, key: str) -> None:
        if key in self._entries:
            del self._entries[key]
            logger.debug(f"Invalidated {key}")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries
