"""In-memory store of published diagnostics, keyed by document identifier."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterator, Sequence

from ..diagnostics.models import LocatedDiagnostic

__all__ = ["DiagnosticCollection", "DiagnosticListener"]

LOGGER = logging.getLogger(__name__)

DiagnosticListener = Callable[[str, tuple[LocatedDiagnostic, ...]], None]


class DiagnosticCollection:
    """Named set of per-document diagnostics, replaced wholesale on each publish."""

    def __init__(self, name: str = "minty") -> None:
        self.name = name
        self._entries: Dict[str, tuple[LocatedDiagnostic, ...]] = {}
        self._listeners: list[DiagnosticListener] = []
        self._lock = threading.Lock()

    def set(self, uri: str, diagnostics: Sequence[LocatedDiagnostic]) -> None:
        """Replace the diagnostics published for ``uri``."""

        entry = tuple(diagnostics)
        with self._lock:
            self._entries[uri] = entry
            listeners = list(self._listeners)
        LOGGER.debug("Published %d diagnostic(s) for %s", len(entry), uri)
        for listener in listeners:
            try:
                listener(uri, entry)
            except Exception:  # pragma: no cover - listener bugs must not break publishing
                LOGGER.debug("Diagnostic listener raised exception", exc_info=True)

    def get(self, uri: str) -> tuple[LocatedDiagnostic, ...]:
        with self._lock:
            return self._entries.get(uri, ())

    def has(self, uri: str) -> bool:
        with self._lock:
            return uri in self._entries

    def delete(self, uri: str) -> None:
        with self._lock:
            self._entries.pop(uri, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def subscribe(self, listener: DiagnosticListener) -> Callable[[], None]:
        """Register ``listener`` for publish events; returns an unsubscribe callable."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def __iter__(self) -> Iterator[tuple[str, tuple[LocatedDiagnostic, ...]]]:
        with self._lock:
            items = list(self._entries.items())
        return iter(items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
