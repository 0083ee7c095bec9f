"""Persistence port for projects, and the debounced save trigger.

A ``ProjectStore`` loads the most recently opened project and saves whole
project snapshots. ``FallbackStore`` puts a primary store (e.g. a server) in
front of a local one: when the primary fails it logs the failure and keeps
working against the local store, so a persistence error never interrupts
editing.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABCMeta, abstractmethod
from threading import Lock, Timer, current_thread
from typing import Callable, Optional, override

from neckdiagram import constants
from neckdiagram.base import PersistenceError, new_id, now_iso
from neckdiagram.models import ProjectData, ProjectRecord


def next_record(
    previous: Optional[ProjectRecord],
    data: ProjectData,
    title: str,
    last_opened_at: Optional[str] = None,
    now: Optional[str] = None,
    id_prefix: str = "",
) -> ProjectRecord:
    """Build the record written by a save.

    Args:
        previous: The stored record, if any; its id and creation time are kept.
        data: The project snapshot.
        title: The project title.
        last_opened_at: When the project was last opened; defaults to now.
        now: Timestamp of the save; the current time by default.
        id_prefix: Prefix of a newly generated record id.

    Returns:
        The record to store.
    """
    stamp = now or now_iso()
    return ProjectRecord(
        id=previous.id if previous is not None else f"{id_prefix}{new_id()}",
        title=title.strip() or constants.DEFAULT_PROJECT_TITLE,
        data=data,
        created_at=previous.created_at if previous is not None else stamp,
        updated_at=stamp,
        last_opened_at=last_opened_at or stamp,
    )


class ProjectStore(metaclass=ABCMeta):
    """Abstract base class for project persistence."""

    @abstractmethod
    def load(self) -> Optional[ProjectRecord]:
        """Load the most recently opened project.

        Returns:
            The record, or None if there is none.

        Raises:
            PersistenceError: If the store cannot be reached.
        """
        raise NotImplementedError()

    @abstractmethod
    def save(
        self, data: ProjectData, title: str, last_opened_at: Optional[str] = None
    ) -> ProjectRecord:
        """Save a project snapshot.

        Args:
            data: The full project data.
            title: The project title.
            last_opened_at: When the project was last opened.

        Returns:
            The stored record.

        Raises:
            PersistenceError: If the store cannot be reached.
        """
        raise NotImplementedError()


class LocalStore(ProjectStore, metaclass=ABCMeta):
    """A store on this machine that can also take a record saved elsewhere."""

    @abstractmethod
    def put(self, record: ProjectRecord) -> None:
        """Replace the stored record."""
        raise NotImplementedError()


class MemoryStore(LocalStore):
    """Keeps the project in memory."""

    def __init__(self, record: Optional[ProjectRecord] = None) -> None:
        self._record = record
        self._lock = Lock()

    @override
    def load(self) -> Optional[ProjectRecord]:
        with self._lock:
            return self._record

    @override
    def save(
        self, data: ProjectData, title: str, last_opened_at: Optional[str] = None
    ) -> ProjectRecord:
        with self._lock:
            self._record = next_record(
                self._record, data, title, last_opened_at, id_prefix="local-"
            )
            return self._record

    @override
    def put(self, record: ProjectRecord) -> None:
        with self._lock:
            self._record = record


class JsonFileStore(LocalStore):
    """Keeps the last project as one JSON document on disk.

    This is the local cache: an unreadable or corrupt file loads as no
    project rather than failing.
    """

    def __init__(self, path: str) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document.
        """
        self._path = path
        self._lock = Lock()

    @property
    def path(self) -> str:
        return self._path

    @override
    def load(self) -> Optional[ProjectRecord]:
        with self._lock:
            return self._read()

    def _read(self) -> Optional[ProjectRecord]:
        if not os.path.exists(self._path):
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as e:
            logging.warning("ignoring unreadable project cache %s: %s", self._path, e)
            return None
        record = ProjectRecord.from_json(raw)
        if record is None:
            logging.warning("ignoring project cache without project data: %s", self._path)
        return record

    def _write(self, record: ProjectRecord) -> None:
        directory = os.path.dirname(self._path)
        temp_path = f"{self._path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as handle:
                json.dump(record.to_json(), handle, indent=2)
            os.replace(temp_path, self._path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self._path}: {e}") from e
        logging.debug("wrote project %s to %s", record.id, self._path)

    @override
    def save(
        self, data: ProjectData, title: str, last_opened_at: Optional[str] = None
    ) -> ProjectRecord:
        with self._lock:
            record = next_record(
                self._read(), data, title, last_opened_at, id_prefix="local-"
            )
            self._write(record)
            return record

    @override
    def put(self, record: ProjectRecord) -> None:
        with self._lock:
            self._write(record)


class FallbackStore(ProjectStore):
    """A primary store backed by a local one.

    Every successful primary save is mirrored to the local store. The first
    primary failure is logged and the store switches to local-only for the
    rest of the session.
    """

    def __init__(self, primary: ProjectStore, local: LocalStore) -> None:
        """Initialize the store.

        Args:
            primary: The preferred store.
            local: The store used after the primary fails.
        """
        self._primary = primary
        self._local = local
        self._use_primary = True

    @property
    def using_primary(self) -> bool:
        """Whether saves still go to the primary store."""
        return self._use_primary

    def _fall_back(self, action: str, error: PersistenceError) -> None:
        logging.warning("%s failed, continuing with the local store: %s", action, error)
        self._use_primary = False

    @override
    def load(self) -> Optional[ProjectRecord]:
        if self._use_primary:
            try:
                record = self._primary.load()
            except PersistenceError as e:
                self._fall_back("load", e)
            else:
                if record is not None:
                    self._local.put(record)
                    return record
        return self._local.load()

    @override
    def save(
        self, data: ProjectData, title: str, last_opened_at: Optional[str] = None
    ) -> ProjectRecord:
        if self._use_primary:
            try:
                record = self._primary.save(data, title, last_opened_at)
            except PersistenceError as e:
                self._fall_back("save", e)
            else:
                self._local.put(record)
                return record
        return self._local.save(data, title, last_opened_at)


class Debouncer:
    """Collapses bursts of calls into one call after a quiet period.

    Each ``call`` restarts the timer; the action runs on a timer thread once
    ``delay`` seconds pass without another call.
    """

    def __init__(self, delay: float, action: Callable[[], None]) -> None:
        """Initialize the debouncer.

        Args:
            delay: Quiet period in seconds.
            action: The function to run.
        """
        self._delay = delay
        self._action = action
        self._lock = Lock()
        self._timer: Optional[Timer] = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting to run."""
        with self._lock:
            return self._timer is not None

    def call(self) -> None:
        """Schedule the action, replacing any scheduled run."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = Timer(self._delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            if self._timer is not current_thread():
                return
            self._timer = None
        self._action()

    def flush(self) -> bool:
        """Run a scheduled action now.

        Returns:
            True if an action was pending and ran.
        """
        with self._lock:
            timer = self._timer
            self._timer = None
        if timer is None:
            return False
        timer.cancel()
        self._action()
        return True

    def cancel(self) -> None:
        """Drop a scheduled action without running it."""
        with self._lock:
            timer = self._timer
            self._timer = None
        if timer is not None:
            timer.cancel()
