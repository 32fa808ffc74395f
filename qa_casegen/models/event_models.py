# ==============================================
# Batch progress event models (outbound) and
# WebSocket command models (inbound)
# ==============================================

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from qa_casegen.models.batch_models import TaskStatus


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class StepEvent(_WireModel):
    """Progress of one task; two per task (in-progress, then terminal)"""
    event: Literal["step"] = "step"
    task_id: str = Field(..., alias="taskId")
    step: int = Field(..., ge=1, description="1-based position of the task in the batch")
    total: int = Field(..., ge=1)
    message: str
    status: TaskStatus


class CompletedEvent(_WireModel):
    """Terminal event of a batch, emitted exactly once and last"""
    event: Literal["completed"] = "completed"
    success: bool
    task_ids: List[str] = Field(..., alias="taskIds")
    completed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    message: str
    cancelled: bool = False


class ErrorEvent(_WireModel):
    """Batch-level failure that prevented processing from starting"""
    event: Literal["error"] = "error"
    success: Literal[False] = False
    error: str


BatchEvent = Annotated[
    Union[StepEvent, CompletedEvent, ErrorEvent],
    Field(discriminator="event")
]


class RunTasksMessage(BaseModel):
    """Inbound submit-batch command"""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["run-tasks"]
    task_ids: List[str] = Field(..., alias="taskIds")


class CancelMessage(BaseModel):
    """Inbound cancel command; no payload"""
    type: Literal["cancel"]


InboundMessage = Annotated[
    Union[RunTasksMessage, CancelMessage],
    Field(discriminator="type")
]

inbound_message_adapter = TypeAdapter(InboundMessage)
