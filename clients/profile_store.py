"""
Profile Store - Persisted learning entities

Holds one learner's goals, learning paths, course units, current ability
assessment, assessment history and cache entries. Data lives in memory and
is optionally mirrored to a JSON file so a console session can resume.

Getters return deep copies; callers change data only through the setters.
All reads and writes hold one re-entrant lock, so tools running on worker
threads see a consistent store.
"""

import copy
import json
import uuid
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from errors import WriteCancelledError

logger = logging.getLogger(__name__)

COLLECTIONS = ("goals", "paths", "course_units", "assessment_history")


def new_id(prefix: str) -> str:
    """Short unique id such as 'goal_1a2b3c4d'."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _empty_state() -> Dict[str, Any]:
    return {
        "goals": [],
        "paths": [],
        "course_units": [],
        "assessment": None,
        "assessment_history": [],
        "cache": {},
    }


class ProfileStore:
    """
    In-memory entity store with optional JSON persistence.

    Args:
        path: JSON file to load from and save to (None keeps data in memory only)
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._state = _empty_state()
        self._lock = threading.RLock()
        self._local = threading.local()
        if self.path and self.path.exists():
            self._load()

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"❌ Profile store {self.path} is corrupt: {e}")
            raise

        state = _empty_state()
        for key in state:
            if key in data:
                state[key] = data[key]
        self._state = state
        logger.info(f"📂 Loaded profile store from {self.path}")

    def _save(self) -> None:
        if not self.path:
            return
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._state, f, ensure_ascii=False, indent=2)

    def reset(self) -> None:
        """Drop all entities and cache entries."""
        with self._writing():
            self._state = _empty_state()
            self._save()
        logger.info("🗑️  Profile store reset")

    # ========================================================================
    # WRITE GUARD
    # ========================================================================

    @contextmanager
    def write_guard(self, cancelled: threading.Event) -> Iterator[None]:
        """
        Refuse writes made by the current thread once cancelled is set.

        Used around a tool call that may be abandoned after a timeout: writes
        committed before the event is set stay, later ones raise
        WriteCancelledError and leave the store untouched.
        """
        previous = getattr(self._local, "cancelled", None)
        self._local.cancelled = cancelled
        try:
            yield
        finally:
            self._local.cancelled = previous

    @contextmanager
    def _writing(self) -> Iterator[None]:
        with self._lock:
            cancelled = getattr(self._local, "cancelled", None)
            if cancelled is not None and cancelled.is_set():
                logger.warning("⚠️  Dropped a store write from an abandoned tool call")
                raise WriteCancelledError("Tool call was abandoned; write refused")
            yield

    # ========================================================================
    # READ-ONLY GETTERS
    # ========================================================================

    def _read(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._state[key])

    def get_goals(self) -> List[Dict[str, Any]]:
        return self._read("goals")

    def get_paths(self) -> List[Dict[str, Any]]:
        return self._read("paths")

    def get_course_units(self) -> List[Dict[str, Any]]:
        return self._read("course_units")

    def get_assessment(self) -> Optional[Dict[str, Any]]:
        return self._read("assessment")

    def get_assessment_history(self) -> List[Dict[str, Any]]:
        return self._read("assessment_history")

    def get_goal(self, goal_id: str) -> Optional[Dict[str, Any]]:
        return self._find("goals", goal_id)

    def get_path(self, path_id: str) -> Optional[Dict[str, Any]]:
        return self._find("paths", path_id)

    def _find(self, collection: str, entity_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for entity in self._state[collection]:
                if entity.get("id") == entity_id:
                    return copy.deepcopy(entity)
        return None

    # ========================================================================
    # SETTERS
    # ========================================================================

    def set_assessment(self, assessment: Optional[Dict[str, Any]]) -> None:
        with self._writing():
            self._state["assessment"] = copy.deepcopy(assessment)
            self._save()

    def add_assessment_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Append a {date, overall_score, level} entry to the history."""
        with self._writing():
            self._state["assessment_history"].append(copy.deepcopy(snapshot))
            self._save()

    def add_goal(self, goal: Dict[str, Any]) -> Dict[str, Any]:
        return self._add("goals", goal, "goal")

    def add_path(self, path: Dict[str, Any]) -> Dict[str, Any]:
        return self._add("paths", path, "path")

    def add_course_unit(self, unit: Dict[str, Any]) -> Dict[str, Any]:
        return self._add("course_units", unit, "unit")

    def update_goal(self, goal_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._writing():
            for goal in self._state["goals"]:
                if goal.get("id") == goal_id:
                    goal.update(copy.deepcopy(updates))
                    self._save()
                    return copy.deepcopy(goal)
        return None

    def _add(self, collection: str, entity: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        entity = copy.deepcopy(entity)
        entity.setdefault("id", new_id(prefix))
        with self._writing():
            self._state[collection].append(entity)
            self._save()
        return copy.deepcopy(entity)

    # ========================================================================
    # CACHE ENTRIES
    # ========================================================================

    def get_cache_entry(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._state["cache"].get(key))

    def set_cache_entry(self, key: str, entry: Dict[str, Any]) -> None:
        with self._writing():
            self._state["cache"][key] = copy.deepcopy(entry)
            self._save()

    def delete_cache_entry(self, key: str) -> None:
        with self._writing():
            if self._state["cache"].pop(key, None) is not None:
                self._save()

    def clear_cache(self, prefix: str = "") -> int:
        """Remove cache entries whose key starts with prefix; returns how many."""
        with self._writing():
            keys = [key for key in self._state["cache"] if key.startswith(prefix)]
            for key in keys:
                del self._state["cache"][key]
            if keys:
                self._save()
        return len(keys)
