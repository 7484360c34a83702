"""
JSON snapshot persistence for students and classes.

The snapshot is read once at startup and rewritten in full after every
mutation. Writes run on a single background worker; callers get a Future they
may wait on but are never failed by a write error. In-memory state and the
file on disk can therefore diverge until the next successful save.
"""

import json
import logging
import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Tuple

from ..core.entities import SchoolClass, Student
from ..core.exceptions import EvalTrackException, PersistenceError

logger = logging.getLogger(__name__)


class JsonSnapshotStore:
    """File-backed snapshot of the whole data set."""

    def __init__(self, path: str):
        self._path = path
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot")

    @property
    def path(self) -> str:
        return self._path

    def _ensure_directory_exists(self) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)

    def load(self) -> Tuple[List[Student], List[SchoolClass]]:
        """
        Read the snapshot.

        A missing or unreadable file yields empty collections. Individual
        malformed records are skipped with a warning.
        """
        with self._lock:
            if not os.path.exists(self._path):
                logger.info("No snapshot at %s, starting empty", self._path)
                return [], []

            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading snapshot from %s: %s", self._path, e)
                return [], []
            if not isinstance(data, dict):
                logger.error("Snapshot at %s is not a JSON object, ignoring it", self._path)
                return [], []

        students: Dict[str, Student] = {}
        for record in self._records(data, "students"):
            try:
                student = Student.from_dict(record)
            except (EvalTrackException, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed student record %r: %s", record, e)
                continue
            if student.cpf in students:
                logger.warning("Skipping duplicate student %s", student.cpf)
                continue
            students[student.cpf] = student

        classes: List[SchoolClass] = []
        for record in self._records(data, "classes"):
            try:
                classes.append(SchoolClass.from_dict(record, students))
            except (EvalTrackException, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed class record %r: %s", record.get("id"), e)

        logger.info("Loaded %d students and %d classes from %s", len(students), len(classes), self._path)
        return list(students.values()), classes

    def _records(self, data: Dict[str, Any], section: str) -> List[Dict[str, Any]]:
        """The JSON objects listed under a section; anything else is skipped."""
        records = data.get(section)
        if records is None:
            return []
        if not isinstance(records, list):
            logger.warning("Ignoring %r in %s: expected a list", section, self._path)
            return []
        objects = [record for record in records if isinstance(record, dict)]
        if len(objects) != len(records):
            logger.warning("Skipping %d non-object %s records in %s",
                           len(records) - len(objects), section, self._path)
        return objects

    def save(self, students: Iterable[Student], classes: Iterable[SchoolClass]) -> None:
        """Write the snapshot atomically. Raises PersistenceError on failure."""
        self._write(self._snapshot(students, classes))

    def trigger_save(self, students: Iterable[Student], classes: Iterable[SchoolClass]) -> "Future[bool]":
        """
        Schedule a save on the background worker.

        The future resolves to True on success and False when the write
        failed; the failure is logged, never raised.
        """
        # Serialize now so later mutations do not leak into this snapshot.
        data = self._snapshot(students, classes)
        return self._executor.submit(self._write_quietly, data)

    @staticmethod
    def _snapshot(students: Iterable[Student], classes: Iterable[SchoolClass]) -> Dict[str, Any]:
        return {
            "students": [student.to_dict() for student in students],
            "classes": [school_class.to_dict() for school_class in classes],
        }

    def _write(self, data: Dict[str, Any]) -> None:
        with self._lock:
            try:
                self._ensure_directory_exists()
                fd, tmp_path = tempfile.mkstemp(
                    prefix=".snapshot-", suffix=".json",
                    dir=os.path.dirname(os.path.abspath(self._path))
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f, indent=2)
                    os.replace(tmp_path, self._path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(f"Failed to save snapshot: {str(e)}")

    def _write_quietly(self, data: Dict[str, Any]) -> bool:
        try:
            self._write(data)
            return True
        except PersistenceError as e:
            logger.error("Error saving snapshot to %s: %s", self._path, e)
            return False

    def close(self) -> None:
        """Wait for pending writes and stop the worker."""
        self._executor.shutdown(wait=True)
