"""Cooperative cancellation for generation runs."""

from __future__ import annotations

import threading

from stackgen.errors import GenerationCancelled


class CancellationToken:
    """Flag a caller sets to stop a run at its next checkpoint.

    The generator checks the token at every phase boundary and before each
    file write.  It is safe to cancel from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        """Raise :class:`GenerationCancelled` if :meth:`cancel` was called."""
        if self._event.is_set():
            raise GenerationCancelled(where or "by caller")
