"""
Repository pattern implementations for in-memory data access.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

from ..core.entities import AbstractEntity, SchoolClass, Student, normalize_cpf
from ..core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=AbstractEntity)


class BaseRepository(ABC, Generic[T]):
    """Base repository keeping entities in insertion order."""

    def __init__(self, entity_type: str):
        self._entity_type = entity_type
        self._entities: Dict[str, T] = {}
        self._lock = threading.RLock()

    def find_all(self) -> List[T]:
        """Return all entities in insertion order."""
        with self._lock:
            return list(self._entities.values())

    def find_by_id(self, entity_id: str) -> Optional[T]:
        with self._lock:
            return self._entities.get(self._normalize_id(entity_id))

    def get(self, entity_id: str) -> T:
        """Find an entity or raise NotFoundError."""
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self._entity_type.capitalize()} not found",
                                error_code=f"{self._entity_type}_not_found",
                                details={"id": entity_id})
        return entity

    def save(self, entity: T) -> T:
        """Insert a new entity."""
        with self._lock:
            if entity.id in self._entities:
                raise ConflictError(f"{self._entity_type.capitalize()} already exists",
                                    error_code=f"duplicate_{self._entity_type}",
                                    details={"id": entity.id})
            self._check_unique(entity)
            self._entities[entity.id] = entity
            logger.info("Saved %s %s", self._entity_type, entity.id)
            return entity

    def update(self, entity: T) -> T:
        """Replace a stored entity with the same id."""
        with self._lock:
            if entity.id not in self._entities:
                raise NotFoundError(f"{self._entity_type.capitalize()} not found",
                                    error_code=f"{self._entity_type}_not_found",
                                    details={"id": entity.id})
            self._check_unique(entity)
            self._entities[entity.id] = entity
            return entity

    def delete(self, entity_id: str) -> bool:
        """Delete an entity by ID. Returns False if it did not exist."""
        with self._lock:
            entity = self.find_by_id(entity_id)
            if entity is None:
                return False
            del self._entities[entity.id]
            logger.info("Deleted %s %s", self._entity_type, entity.id)
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._entities)

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()

    def _normalize_id(self, entity_id: str) -> str:
        return entity_id

    @abstractmethod
    def _check_unique(self, entity: T) -> None:
        """Raise ConflictError if the entity collides with a different stored one."""
        pass


class StudentRepository(BaseRepository[Student]):
    """Students keyed by normalized CPF."""

    def __init__(self):
        super().__init__("student")

    def _normalize_id(self, entity_id: str) -> str:
        return normalize_cpf(entity_id)

    def _check_unique(self, entity: Student) -> None:
        # The id is the CPF, so the dict key already enforces uniqueness.
        pass


class ClassRepository(BaseRepository[SchoolClass]):
    """Classes keyed by id, with a uniqueness index on (topic, year, semester)."""

    def __init__(self):
        super().__init__("class")
        # id -> natural key as of the last successful save/update
        self._keys: Dict[str, Tuple[str, int, int]] = {}

    def find_by_id(self, entity_id: str) -> Optional[SchoolClass]:
        """Look up by immutable id, falling back to the "topic-year-semester" key."""
        with self._lock:
            school_class = self._entities.get(entity_id)
            if school_class is not None:
                return school_class
            for candidate in self._entities.values():
                if candidate.display_key == entity_id:
                    return candidate
            return None

    def find_by_natural_key(self, topic: str, year: int, semester: int) -> Optional[SchoolClass]:
        with self._lock:
            key = (topic, year, semester)
            for class_id, stored_key in self._keys.items():
                if stored_key == key:
                    return self._entities[class_id]
            return None

    def is_key_available(self, natural_key: Tuple[str, int, int], exclude_id: Optional[str] = None) -> bool:
        with self._lock:
            existing = self.find_by_natural_key(*natural_key)
            return existing is None or existing.id == exclude_id

    def find_by_student(self, cpf: str) -> List[SchoolClass]:
        """Classes in which the student is enrolled."""
        with self._lock:
            return [c for c in self._entities.values() if c.find_enrollment(cpf) is not None]

    def save(self, entity: SchoolClass) -> SchoolClass:
        with self._lock:
            super().save(entity)
            self._keys[entity.id] = entity.natural_key
            return entity

    def update(self, entity: SchoolClass) -> SchoolClass:
        """
        Store a class whose fields were edited in place.

        On a key collision the class is put back to its last stored key
        before ConflictError propagates.
        """
        with self._lock:
            stored_key = self._keys.get(entity.id)
            try:
                super().update(entity)
            except ConflictError:
                if stored_key is not None:
                    entity.restore_key(stored_key)
                raise
            self._keys[entity.id] = entity.natural_key
            return entity

    def update_key(self, class_id: str, topic: str, semester: int, year: int) -> SchoolClass:
        """Move a class to a new (topic, year, semester), checking the key before mutating."""
        with self._lock:
            school_class = self.get(class_id)
            # Validates the new values without touching the stored class
            probe = SchoolClass(topic=topic, semester=semester, year=year)
            if not self.is_key_available(probe.natural_key, exclude_id=school_class.id):
                raise self._duplicate(probe)
            school_class.change_key(probe.topic, probe.semester, probe.year)
            self._keys[school_class.id] = school_class.natural_key
            return school_class

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            entity = self.find_by_id(entity_id)
            if entity is None:
                return False
            self._keys.pop(entity.id, None)
            return super().delete(entity.id)

    def clear(self) -> None:
        with self._lock:
            super().clear()
            self._keys.clear()

    def _check_unique(self, entity: SchoolClass) -> None:
        if not self.is_key_available(entity.natural_key, exclude_id=entity.id):
            raise self._duplicate(entity)

    @staticmethod
    def _duplicate(school_class: SchoolClass) -> ConflictError:
        return ConflictError(
            f"Class {school_class.display_key} already exists",
            error_code="duplicate_class",
            details={"key": school_class.display_key}
        )
