"""
Watcher for the spark storage root.

The storage (a cloud-synced container or a plain directory) is polled for
changes. The first scan is the "gathered" signal, later changes are
"updated" signals; both trigger the same full rebuild. A rebuild is
computed entirely off the event loop and installed into the state in one
swap, so consumers only ever see complete lists.
"""

import asyncio
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles
from loguru import logger

from .bus import Event, EventBus
from .config import StorageConfig
from .errors import StorageUnavailable
from .spark import EPOCH, SparkRecord, build_record
from .state import SparkState

Fingerprint = Tuple[Tuple[str, int, int], ...]


@dataclass(frozen=True)
class FileEntry:
    """A candidate spark file with its file system timestamps."""
    path: Path
    created: Optional[datetime]
    modified: Optional[datetime]
    mtime_ns: int
    size: int

    @property
    def sort_date(self) -> datetime:
        return self.created or self.modified or EPOCH


def _entry_for(path: Path) -> Optional[FileEntry]:
    """Stat a path; None for directories, non-regular or unreadable entries."""
    try:
        st = path.stat()
    except OSError as e:
        logger.debug(f"Skipping unreadable entry {path}: {e}")
        return None
    if not path.is_file():
        return None

    birth = getattr(st, "st_birthtime", None)
    return FileEntry(
        path=path,
        created=datetime.fromtimestamp(birth) if birth else None,
        modified=datetime.fromtimestamp(st.st_mtime),
        mtime_ns=st.st_mtime_ns,
        size=st.st_size,
    )


def _is_hidden(name: str) -> bool:
    # Sync placeholders (".note.md.icloud") and OS litter (".DS_Store")
    return name.startswith(".")


def walk_container(root: Path) -> List[Path]:
    """Every visible file below ``root``; symlinked directories are not followed."""
    files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=lambda e: None):
        dirnames[:] = [d for d in dirnames if not _is_hidden(d)]
        files.extend(Path(dirpath) / name for name in filenames if not _is_hidden(name))
    return files


def walk_directory(root: Path, max_depth: int = 10) -> List[Path]:
    """
    Recursive walk that follows symlinks but stops ``max_depth`` levels
    down. Directory read errors count as "no files here".
    """
    files: List[Path] = []

    def _search(directory: Path, level: int) -> None:
        try:
            with os.scandir(directory) as it:
                children = list(it)
        except OSError as e:
            logger.debug(f"Cannot read directory {directory}: {e}")
            return

        for child in children:
            if _is_hidden(child.name):
                continue
            try:
                if child.is_file():
                    files.append(Path(child.path))
                elif child.is_dir() and level < max_depth:
                    _search(Path(child.path), level + 1)
            except OSError:
                continue

    _search(root, 0)
    return files


class SparkWatcher:
    """
    Keeps ``SparkState`` in line with the files under the watched root.

    start() and stop() are idempotent; stop() releases the polling task
    so no watch outlives the consumer that asked for it.
    """

    def __init__(
        self,
        config: StorageConfig,
        state: SparkState,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config
        self.state = state
        self.event_bus = event_bus

        self._task: Optional[asyncio.Task] = None
        self._rebuild_lock = asyncio.Lock()
        self._fingerprint: Optional[Fingerprint] = None

        self.stats = {
            "rebuilds": 0,
            "skipped_files": 0,
            "poll_errors": 0,
            "last_duration_ms": 0.0,
        }

    @property
    def root(self) -> Path:
        return self.config.watched_root()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Begin watching; a second call while running does nothing."""
        if self.running:
            return
        self._fingerprint = None
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Spark watcher started on {self.root} ({self.config.mode} mode)")

    async def stop(self) -> None:
        """Stop watching; safe to call when already stopped."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Spark watcher stopped")

    async def _run_loop(self) -> None:
        """Initial gather, then rebuild whenever the file set changes."""
        await self._handle_signal("gathered")
        while True:
            await asyncio.sleep(self.config.poll_interval_s)
            try:
                await self._poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats["poll_errors"] += 1
                logger.error(f"Spark poll failed: {e}")

    async def _poll(self) -> None:
        try:
            entries = await asyncio.to_thread(self.enumerate)
        except StorageUnavailable:
            entries = None
        if self._fingerprint_of(entries) != self._fingerprint:
            await self._handle_signal("updated", entries)

    async def _handle_signal(self, kind: str, entries: Optional[List[FileEntry]] = None) -> None:
        await self._emit(f"sparks.{kind}", {"root": str(self.root)})
        try:
            await self.rebuild(entries)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Spark rebuild failed: {e}")

    def resolve_root(self) -> Path:
        """The watched root, or StorageUnavailable when it is missing."""
        root = self.root
        if not self.config.walks_directory and not self.config.container_path().is_dir():
            raise StorageUnavailable(self.config.container_path())
        if not root.is_dir():
            raise StorageUnavailable(root)
        return root

    def enumerate(self) -> List[FileEntry]:
        """Current candidate files, newest first by file system date."""
        root = self.resolve_root()
        if self.config.walks_directory:
            paths = walk_directory(root, self.config.max_depth)
        else:
            paths = walk_container(root)

        entries = []
        seen = set()
        for path in paths:
            entry = _entry_for(path)
            if entry is None:
                continue
            key = str(entry.path.absolute())
            if key in seen:
                continue
            seen.add(key)
            entries.append(entry)

        entries.sort(key=lambda e: e.sort_date, reverse=True)
        return entries

    @staticmethod
    def _fingerprint_of(entries: Optional[List[FileEntry]]) -> Optional[Fingerprint]:
        if entries is None:
            return None
        return tuple(sorted((str(e.path), e.mtime_ns, e.size) for e in entries))

    async def rebuild(self, entries: Optional[List[FileEntry]] = None) -> List[SparkRecord]:
        """
        Full rebuild: enumerate, read every file, publish the complete list.
        Rebuilds never overlap; an unavailable root publishes an empty list.
        """
        async with self._rebuild_lock:
            start = asyncio.get_running_loop().time()
            notice = None

            try:
                if entries is None:
                    entries = await asyncio.to_thread(self.enumerate)
            except StorageUnavailable as e:
                logger.warning(str(e))
                notice = str(e)
                entries = None
                await self._emit("storage.unavailable", {"root": str(e.root)})

            records = await self._read_records(entries or [])
            self._fingerprint = self._fingerprint_of(entries)

            self.state.install(records, notice=notice)

            self.stats["rebuilds"] += 1
            self.stats["last_duration_ms"] = (asyncio.get_running_loop().time() - start) * 1000
            await self._emit("sparks.published", {
                "count": len(records),
                "version": self.state.version,
            })
            logger.debug(f"Published {len(records)} sparks in {self.stats['last_duration_ms']:.1f}ms")
            return records

    async def _read_records(self, entries: List[FileEntry]) -> List[SparkRecord]:
        records = []
        for entry in entries:
            try:
                async with aiofiles.open(entry.path, "r", encoding="utf-8") as f:
                    text = await f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable spark {entry.path}: {e}")
                self.stats["skipped_files"] += 1
                continue
            records.append(build_record(
                str(entry.path.absolute()),
                text,
                fs_created=entry.created,
                fs_modified=entry.modified,
            ))

        # Header dates may disagree with file dates; keep the newest-first invariant
        records.sort(key=lambda r: r.created_date, reverse=True)
        return records

    async def _emit(self, event_type: str, data: dict) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(Event(type=event_type, data=data, source="spark_watcher"))
