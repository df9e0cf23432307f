from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from linkboard.samplers.base import Sample

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Wraps one metric family's sampler with its own refresh interval.

    While fresh, ``get`` returns the cached value and cached error unchanged.
    Once stale it re-samples and records the result and timestamp, errors
    included. A failed refresh that produced nothing keeps serving the last
    good value; with no good value yet, ``default`` is served with the error.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        sampler: Callable[[], Sample[T]],
        default: Callable[[], T],
    ) -> None:
        self.name = name
        self.ttl = ttl
        self._sampler = sampler
        self._default = default
        self._value: T | None = None
        self._error = ""
        self._refreshed_at: float | None = None

    def is_fresh(self, now: float) -> bool:
        return self._refreshed_at is not None and now - self._refreshed_at < self.ttl

    def get(self, now: float) -> Sample[T]:
        if not self.is_fresh(now):
            self._refresh(now)
        value = self._value if self._value is not None else self._default()
        return Sample(value, self._error)

    def _refresh(self, now: float) -> None:
        try:
            result = self._sampler()
        except Exception as exc:
            logger.exception("Sampler [%s] raised", self.name)
            result = Sample(None, f"{self.name}: {exc}")

        if result.value is not None or result.ok:
            self._value = result.value
        if result.error != self._error:
            if result.error:
                logger.debug("Sampler [%s] failing: %s", self.name, result.error)
            else:
                logger.debug("Sampler [%s] recovered", self.name)
        self._error = result.error
        self._refreshed_at = now
