"""
Per-operation cache of check results.
"""

import threading
from typing import Callable, Dict, Hashable, Optional, Tuple

from ..expressions.models import CheckResult


class ExpressionResultCache:
    """Maps (check, request scope, subject, change) keys to check results for one operation.

    Every tree built within an operation shares one cache, so a check that
    appears in several trees runs once. ``get_or_compute`` serialises
    computation per key, which keeps that guarantee when independent trees
    are evaluated from different threads.
    """

    def __init__(self):
        self._results: Dict[Hashable, CheckResult] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[Hashable, threading.RLock] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[CheckResult]:
        """Get a cached result."""
        with self._lock:
            return self._results.get(key)

    def put(self, key: Hashable, result: CheckResult):
        """Store a final result."""
        if result is CheckResult.UNEVALUATED:
            raise ValueError("Only PASSED or FAILED results can be cached")
        with self._lock:
            self._results[key] = result

    def get_or_compute(self, key: Hashable, compute: Callable[[], CheckResult]) -> Tuple[CheckResult, bool]:
        """Return ``(result, cache_hit)``, computing and storing on a miss.

        A failing ``compute`` stores nothing and propagates its exception.
        """
        cached = self.get(key)
        if cached is not None:
            with self._lock:
                self.hits += 1
            return cached, True

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.RLock())

        with key_lock:
            cached = self.get(key)
            if cached is not None:
                with self._lock:
                    self.hits += 1
                return cached, True

            result = compute()
            self.put(key, result)
            with self._lock:
                self.misses += 1
            return result, False

    def clear(self):
        """Discard all results at operation end."""
        with self._lock:
            self._results.clear()
            self._key_locks.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def get_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {"entries": len(self._results), "hits": self.hits, "misses": self.misses}
