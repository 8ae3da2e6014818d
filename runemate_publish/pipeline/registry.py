"""Stage registry - tracks every stage of the publish pipeline."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from runemate_publish.project import PublishProject

logger = logging.getLogger(__name__)


class StageState(str, Enum):
    """Stage lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Stage:
    """One unit of work in the pipeline.

    Subclasses set ``task_name`` and implement ``run()``. A stage is
    identified by its path, e.g. ``:generateManifests`` for the root project
    or ``:woodcutter:generateManifests`` for a sub-project.
    """

    task_name: str = ""
    description: str = ""

    def __init__(self, project: PublishProject, depends_on: Iterable[str] = ()):
        self.project = project
        self.depends_on: List[str] = list(depends_on)
        self.state = StageState.PENDING
        self.error: Optional[str] = None

    @property
    def path(self) -> str:
        return self.project.task_path(self.task_name)

    def run(self) -> None:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "description": self.description,
            "depends_on": list(self.depends_on),
            "state": self.state.value,
            "error": self.error,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r}, state={self.state.value})"


class StageRegistry:
    """Central registry for all stages, keyed by path."""

    def __init__(self):
        self._stages: Dict[str, Stage] = {}

    def register(self, stage: Stage) -> Stage:
        """Register a stage. Registering a taken path is a no-op returning the existing stage."""
        existing = self._stages.get(stage.path)
        if existing is not None:
            logger.debug(f"Stage '{stage.path}' already registered, keeping existing")
            return existing
        self._stages[stage.path] = stage
        logger.debug(f"Registered stage: {stage.path}")
        return stage

    def get(self, path: str) -> Optional[Stage]:
        return self._stages.get(path)

    def get_all(self) -> List[Stage]:
        return list(self._stages.values())

    def select(self, name: str) -> List[Stage]:
        """Stages matching a full path, or every stage with that task name."""
        if name in self._stages:
            return [self._stages[name]]
        return [s for s in self._stages.values() if s.task_name == name]

    def has(self, path: str) -> bool:
        return path in self._stages

    def count(self) -> int:
        return len(self._stages)
