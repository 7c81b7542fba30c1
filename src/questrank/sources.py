"""Snapshot sources for leaderboard data.

A source maps a path such as ``leaderboards/globalXP`` to a snapshot
(``{uid: {...metrics}}``) and can push full-snapshot updates to listeners.
The ranking core only reads from sources; writes live here so tools and
tests have something to read.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

from questrank.errors import InvalidInput, SnapshotError

logger = logging.getLogger(__name__)

Snapshot = Mapping[str, Any]
SnapshotCallback = Callable[["Snapshot | None"], None]
ErrorCallback = Callable[[BaseException], None]

SNAPSHOT_FILE_SUFFIX = ".json"


class SnapshotSource(Protocol):
    """Storage collaborator contract."""

    def read(self, path: str) -> Snapshot | None:
        """Return the snapshot at path, or None if nothing is stored there."""
        ...

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Callable[[], None]:
        """Deliver the current and every later snapshot at path.

        Returns a function that detaches the listener.
        """
        ...


class _Watch:
    """One registered listener on a path."""

    def __init__(self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        self.path = path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.last: Any = _UNSEEN


_UNSEEN = object()
_FAILED = object()


class MemorySource:
    """In-process source. Mutations notify listeners synchronously."""

    def __init__(self, data: Mapping[str, Snapshot] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict] = {k: copy.deepcopy(dict(v)) for k, v in (data or {}).items()}
        self._watches: list[_Watch] = []

    def read(self, path: str) -> Snapshot | None:
        with self._lock:
            snapshot = self._data.get(path)
            return copy.deepcopy(snapshot) if snapshot is not None else None

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Callable[[], None]:
        watch = _Watch(path, on_snapshot, on_error)

        def unsubscribe() -> None:
            with self._lock:
                if watch in self._watches:
                    self._watches.remove(watch)

        with self._lock:
            self._watches.append(watch)
        try:
            watch.on_snapshot(self.read(path))
        except BaseException:
            unsubscribe()
            raise

        return unsubscribe

    def listener_count(self, path: str | None = None) -> int:
        with self._lock:
            return sum(1 for w in self._watches if path is None or w.path == path)

    def set_snapshot(self, path: str, data: Snapshot) -> None:
        """Replace the snapshot at path and notify its listeners."""
        with self._lock:
            self._data[path] = copy.deepcopy(dict(data))
        self._notify(path)

    def delete(self, path: str) -> None:
        """Remove the snapshot at path; listeners receive None."""
        with self._lock:
            self._data.pop(path, None)
        self._notify(path)

    def fail(self, path: str, error: BaseException) -> None:
        """Report a channel failure to every listener on path."""
        for watch in self._watches_for(path):
            watch.on_error(error)

    def _watches_for(self, path: str) -> list[_Watch]:
        with self._lock:
            return [w for w in self._watches if w.path == path]

    def _notify(self, path: str) -> None:
        for watch in self._watches_for(path):
            watch.on_snapshot(self.read(path))


class JsonDirectorySource:
    """Source backed by one JSON file per path under a root directory.

    ``leaderboards/courses/c1`` lives at ``<root>/leaderboards/courses/c1.json``.
    Listeners are driven by poll(), which re-reads watched paths and only
    notifies when a file's content changed.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()
        self._watches: list[_Watch] = []

    def file_for(self, path: str) -> Path:
        """Return the JSON file backing path. Rejects paths escaping the root."""
        parts = [p for p in path.strip().split("/") if p]
        if not parts or path.startswith("/") or any(p in (".", "..") for p in parts):
            raise InvalidInput(f"Invalid snapshot path: {path!r}")
        return self.root.joinpath(*parts[:-1], parts[-1] + SNAPSHOT_FILE_SUFFIX)

    def read(self, path: str) -> Snapshot | None:
        file_path = self.file_for(path)
        if not file_path.exists():
            return None
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise SnapshotError(f"Cannot read snapshot {file_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot {file_path} is not a JSON object")
        return data

    def write(self, path: str, data: Snapshot) -> Path:
        """Write a snapshot atomically. Returns the file written."""
        output_path = self.file_for(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=output_path.parent, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(dict(data), f, indent=2)
                f.write("\n")
            os.replace(tmp_path, output_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return output_path

    def delete(self, path: str) -> None:
        self.file_for(path).unlink(missing_ok=True)

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Callable[[], None]:
        self.file_for(path)
        watch = _Watch(path, on_snapshot, on_error)

        def unsubscribe() -> None:
            with self._lock:
                if watch in self._watches:
                    self._watches.remove(watch)

        with self._lock:
            self._watches.append(watch)
        try:
            self._check(watch)
        except BaseException:
            unsubscribe()
            raise

        return unsubscribe

    def poll(self) -> int:
        """Re-read every watched path. Returns how many listeners were notified."""
        with self._lock:
            watches = list(self._watches)
        return sum(1 for watch in watches if self._check(watch))

    def _check(self, watch: _Watch) -> bool:
        try:
            snapshot = self.read(watch.path)
        except SnapshotError as exc:
            if watch.last is _FAILED:
                return False
            logger.warning("Snapshot source error on %s: %s", watch.path, exc)
            watch.last = _FAILED
            watch.on_error(exc)
            return True
        if snapshot == watch.last:
            return False
        watch.last = snapshot
        watch.on_snapshot(copy.deepcopy(snapshot))
        return True
