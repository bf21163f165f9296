"""
In-process counters used when the durable store is unset or failing.

Nothing here survives a restart except the legacy counter, which can be
mirrored to a flat file.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class _Cell:
    """A single counter with its own lock."""

    __slots__ = ("value", "lock")

    def __init__(self, value: int = 0):
        self.value = value
        self.lock = threading.Lock()

    def add(self, n: int = 1) -> int:
        with self.lock:
            self.value += n
            return self.value


class FallbackCounter:
    """
    Map of identifier -> counter.

    Readers never take the map lock. Creating an entry is double-checked
    under the map lock, so concurrent first increments for the same unseen
    identifier always land on one entry.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cells: Dict[str, _Cell] = {}

    def _get_or_create(self, identifier: str) -> _Cell:
        cell = self._cells.get(identifier)
        if cell is not None:
            return cell
        with self._lock:
            cell = self._cells.get(identifier)
            if cell is None:
                cell = _Cell()
                self._cells[identifier] = cell
            return cell

    def increment(self, identifier: str) -> int:
        return self._get_or_create(identifier).add()

    def read(self, identifier: str) -> int:
        cell = self._cells.get(identifier)
        if cell is None:
            return 0
        return cell.value

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def reset(self) -> None:
        """Drop every counter (useful in tests)."""
        with self._lock:
            self._cells.clear()


def load_count_from_file(path: str) -> int:
    """Read a persisted count. An empty file counts as zero."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()
    if not raw:
        return 0
    value = int(raw)
    if value < 0:
        raise ValueError(f"negative persisted count: {value}")
    return value


def save_count_to_file(path: str, value: int) -> None:
    """Write the count to ``path.tmp`` then rename it over ``path``."""
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(str(value))
        os.chmod(tmp, 0o600)
        os.replace(tmp, path)
    except OSError:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise


class SingleCounter:
    """
    Legacy unkeyed counter, optionally mirrored to a file.

    Persistence is best-effort: write failures are logged and the in-memory
    value stays authoritative.
    """

    def __init__(self, value: int = 0, persist_path: Optional[str] = None):
        self._cell = _Cell(value)
        self.persist_path = persist_path

    @classmethod
    def load(
        cls, persist_path: Optional[str] = None, seed: Optional[int] = None
    ) -> "SingleCounter":
        """
        Build a counter from the persisted file, else from ``seed``.
        """
        value = seed or 0
        if persist_path:
            try:
                value = load_count_from_file(persist_path)
                logger.info("loaded count=%d from %s", value, persist_path)
            except FileNotFoundError:
                logger.info("no persisted count at %s yet", persist_path)
            except (OSError, ValueError) as exc:
                logger.warning("could not load persisted count: %s", exc)
        return cls(value, persist_path=persist_path)

    def increment(self) -> int:
        with self._cell.lock:
            self._cell.value += 1
            value = self._cell.value
            # Saved under the lock so an older value never overwrites a newer one.
            self._persist(value)
        return value

    def read(self) -> int:
        return self._cell.value

    def save(self) -> None:
        with self._cell.lock:
            self._persist(self._cell.value)

    def _persist(self, value: int) -> None:
        if not self.persist_path:
            return
        try:
            save_count_to_file(self.persist_path, value)
        except OSError as exc:
            logger.warning("persist failed: %s", exc)
