import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


Status = Literal["pending", "running", "succeeded", "failed"]
StepKind = Literal["checkout", "build", "login", "push", "pull", "run", "install", "test"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Step(BaseModel):
    """
    Атомарное действие пайплайна (build, push, pull, run, install, test...).
    Запускается только целиком: отмена возможна лишь между шагами.
    """

    name: str
    kind: StepKind
    timeout: Optional[float] = None
    status: Status = "pending"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    logs: List[str] = Field(default_factory=list)
    error: Optional[str] = None   # сырой вывод упавшего инструмента


class Stage(BaseModel):
    """
    Стадия: упорядоченный набор шагов + имена стадий-предшественников.
    Стартует только когда все needs в статусе succeeded.
    """

    name: str
    needs: List[str] = Field(default_factory=list)
    steps: List[Step]
    status: Status = "pending"

    def get_step(self, name: str) -> Optional[Step]:
        for step in self.steps:
            if step.name == name:
                return step
        return None


class TriggerRef(BaseModel):
    branch: str
    ref: Optional[str] = None


class PipelineRun(BaseModel):
    """
    Один прогон пайплайна, созданный по push-событию.
    """

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    trigger: TriggerRef
    stages: List[Stage]
    status: Status = "pending"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def get_stage(self, name: str) -> Optional[Stage]:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def failed_step(self) -> Optional[Step]:
        """Первый упавший шаг прогона (по порядку стадий)."""
        for stage in self.stages:
            for step in stage.steps:
                if step.status == "failed":
                    return step
        return None
