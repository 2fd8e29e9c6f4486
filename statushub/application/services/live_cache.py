from __future__ import annotations
"""statushub/application/services/live_cache.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Cache mémoire à TTL devant les sources amont.

Clés utilisées : `live:all` (liste complète) et `live:<slug>`.
Une instance par process (app.state côté FastAPI, module côté worker Celery),
injectée là où elle sert ; l'horloge est injectable pour les tests.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

ALL_KEY = "live:all"


def service_key(slug: str) -> str:
    return f"live:{slug}"


class LiveCache:
    def __init__(self, ttl_seconds: float = 120, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        # endpoints sync => threadpool : accès concurrents possibles
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Valeur ou None ; une entrée expirée est évincée."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
