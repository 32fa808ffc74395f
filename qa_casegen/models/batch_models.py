# ==============================================
# Batch processing data models
# ==============================================

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class TaskStatus(str, Enum):
    """Lifecycle of one task within a batch"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass
class BatchTask:
    """A submitted ticket id and its transient progress state"""
    id: str
    ordinal: int  # 1-based position in the batch
    status: TaskStatus = TaskStatus.PENDING
    message: str = ""


@dataclass
class BatchRun:
    """Aggregate over one submitted list, owned by a single run_batch call"""
    task_ids: Tuple[str, ...]
    tasks: List[BatchTask] = field(default_factory=list)
    completed_count: int = 0
    cancelled: bool = False
    timed_out: bool = False

    @property
    def total(self) -> int:
        return len(self.task_ids)

    @property
    def failed_count(self) -> int:
        # Tasks never started (cancelled batch) count as failed
        return self.total - self.completed_count


@dataclass(frozen=True)
class ProcessorOutcome:
    """Result of processing one ticket"""
    succeeded: bool
    message: Optional[str] = None
    test_cases_created: int = 0


@dataclass(frozen=True)
class BatchResult:
    """Aggregate outcome returned by run_batch"""
    task_ids: Tuple[str, ...]
    completed: int
    failed: int
    cancelled: bool = False
    statuses: Tuple[Tuple[str, TaskStatus], ...] = ()

    @property
    def total(self) -> int:
        return len(self.task_ids)
