"""Implementation plan and specification models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"


class RequirementType(str, Enum):
    SECTION = "section"
    TASK = "task"
    RFC2119 = "rfc2119"


class Task(BaseModel):
    """A checklist line from the implementation plan."""

    description: str
    status: TaskStatus
    spec_refs: list[str] = Field(default_factory=list)
    line_number: int
    priority: Optional[int] = None
    dependencies: list[str] = Field(default_factory=list)
    complexity: Optional[str] = None


class Requirement(BaseModel):
    """A heading, checklist line or normative statement from a spec document."""

    spec_name: str
    req_type: RequirementType
    text: str
    line_number: int


class CoverageEntry(BaseModel):
    spec_name: str
    requirement_count: int
    task_count: int
    coverage_percent: float


class VerifyReport(BaseModel):
    """Plan status and spec coverage, as printed by ``fresher verify``."""

    total_tasks: int
    pending_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    tasks_with_refs: int
    orphan_tasks: int
    coverage: list[CoverageEntry] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)


class FeatureState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class FeatureStatus(BaseModel):
    """Task counts for one feature file of a hierarchical ``impl/`` plan."""

    name: str
    file: str
    status: FeatureState
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    spec_ref: Optional[str] = None

    @computed_field
    @property
    def completion_percent(self) -> float:
        # A feature with no tasks has nothing left to do
        if self.total_tasks == 0:
            return 100.0
        return self.completed_tasks / self.total_tasks * 100.0


class CrossCuttingTasks(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0


class HierarchicalReport(BaseModel):
    """Progress of an ``impl/`` plan, as printed by ``fresher verify``."""

    plan_type: str = "hierarchical"
    impl_dir: str
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    is_complete: bool
    current_focus: Optional[str] = None
    features: list[FeatureStatus] = Field(default_factory=list)
    cross_cutting: CrossCuttingTasks = Field(default_factory=CrossCuttingTasks)
