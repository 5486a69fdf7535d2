"""Observer protocol and the bus that delivers generation events.

Observers are plain values with three callbacks.  Each delivery is wrapped
individually: an observer that raises is logged and skipped, and the
remaining observers still receive the event.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from stackgen.logger import get_logger
from stackgen.models import GenerationProgress, GenerationResult


@runtime_checkable
class GenerationObserver(Protocol):
    """Listener notified about one or more generation runs."""

    def on_progress(self, progress: GenerationProgress) -> None: ...

    def on_complete(self, result: GenerationResult) -> None: ...

    def on_error(self, error: Exception) -> None: ...


class ObserverBus:
    """Ordered, thread-safe list of observers compared by identity.

    ``generate()`` takes a :meth:`snapshot` when it starts and notifies only
    that list, so observers registered or removed mid-run, or by a
    concurrent run, do not affect deliveries for the run in progress.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger(__name__)
        self._observers: list[GenerationObserver] = []
        self._lock = threading.Lock()

    def add(self, observer: GenerationObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove(self, observer: GenerationObserver) -> None:
        """Remove *observer* (by identity); unknown observers are ignored."""
        with self._lock:
            for index, existing in enumerate(self._observers):
                if existing is observer:
                    del self._observers[index]
                    return

    def snapshot(self) -> list[GenerationObserver]:
        with self._lock:
            return list(self._observers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def __contains__(self, observer: object) -> bool:
        with self._lock:
            return any(existing is observer for existing in self._observers)

    # -- Notification ------------------------------------------------------

    def notify_progress(
        self,
        progress: GenerationProgress,
        observers: Iterable[GenerationObserver] | None = None,
    ) -> None:
        for observer in self._targets(observers):
            try:
                observer.on_progress(progress)
            except Exception as exc:
                self.logger.warning("Observer progress notification failed: %s", exc)

    def notify_complete(
        self,
        result: GenerationResult,
        observers: Iterable[GenerationObserver] | None = None,
    ) -> None:
        for observer in self._targets(observers):
            try:
                observer.on_complete(result)
            except Exception as exc:
                self.logger.warning("Observer completion notification failed: %s", exc)

    def notify_error(
        self,
        error: Exception,
        observers: Iterable[GenerationObserver] | None = None,
    ) -> None:
        for observer in self._targets(observers):
            try:
                observer.on_error(error)
            except Exception as exc:
                self.logger.warning(
                    "Observer error notification failed: %s (original error: %s)", exc, error
                )

    def _targets(
        self, observers: Iterable[GenerationObserver] | None
    ) -> list[GenerationObserver]:
        return list(observers) if observers is not None else self.snapshot()
