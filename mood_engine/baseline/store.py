#!/usr/bin/env python3
"""
Baseline storage.

BaselineStore is the seam to whatever persists baselines; the manager only
needs get/put plus a per-subject lock so concurrent updates of one subject
serialize while different subjects proceed in parallel.
"""
import threading
from typing import ContextManager, Dict, List, Optional, Protocol

from schemas.baseline import EmotionalBaseline


class BaselineStore(Protocol):
    def get(self, subject_id: str) -> Optional[EmotionalBaseline]:
        ...

    def put(self, baseline: EmotionalBaseline) -> None:
        ...

    def lock(self, subject_id: str) -> ContextManager:
        ...


class InMemoryBaselineStore:
    """Latest baseline per subject plus every superseded version."""

    def __init__(self):
        self._current: Dict[str, EmotionalBaseline] = {}
        self._versions: Dict[str, List[EmotionalBaseline]] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, subject_id: str) -> Optional[EmotionalBaseline]:
        return self._current.get(subject_id)

    def put(self, baseline: EmotionalBaseline) -> None:
        with self._guard:
            self._current[baseline.subject_id] = baseline
            self._versions.setdefault(baseline.subject_id, []).append(baseline)

    def lock(self, subject_id: str) -> threading.RLock:
        with self._guard:
            if subject_id not in self._locks:
                self._locks[subject_id] = threading.RLock()
            return self._locks[subject_id]

    def versions(self, subject_id: str) -> List[EmotionalBaseline]:
        return list(self._versions.get(subject_id, []))

    def subjects(self) -> List[str]:
        return sorted(self._current)
