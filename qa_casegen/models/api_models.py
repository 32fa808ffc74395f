# ==============================================
# HTTP request/response models
# ==============================================

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RunTasksRequest(BaseModel):
    """Request model for starting a batch over HTTP"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"taskIds": ["PA-12345", "PA-12346"]}}
    )

    task_ids: List[str] = Field(..., alias="taskIds", description="Jira ticket ids in processing order")


class RunTasksResponse(BaseModel):
    """Acknowledgement of a started batch"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    task_ids: List[str] = Field(..., alias="taskIds")


class ResolveTitleRequest(BaseModel):
    """Request model for classifying a ticket title"""
    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Onsite analytics: add heatmap export"}}
    )

    title: str = Field(..., description="Ticket title")


class ResolveTitleResponse(BaseModel):
    """Classification result with its destination folder"""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    analytics_type: str = Field(..., alias="analyticsType")
    has_keyword_match: bool = Field(..., alias="hasKeywordMatch")
    ambiguous: bool = False
    folder_id: Optional[int] = Field(None, alias="folderId")
    folder_name: Optional[str] = Field(None, alias="folderName")


class FolderResponse(BaseModel):
    """One domain -> folder mapping"""
    model_config = ConfigDict(populate_by_name=True)

    analytics_type: str = Field(..., alias="analyticsType")
    folder_id: int = Field(..., alias="folderId")
    folder_name: str = Field(..., alias="folderName")


class VerifyFoldersResponse(BaseModel):
    """Configured folders checked against BrowserStack"""
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    checked: int
    missing_folder_ids: List[int] = Field(default_factory=list, alias="missingFolderIds")


# --- Manual prompt workflow ---

class GenerationMode(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class ModeResponse(BaseModel):
    """Which generation modes the server can run"""
    model_config = ConfigDict(populate_by_name=True)

    mode: GenerationMode
    gemini_available: bool = Field(..., alias="geminiAvailable")
    message: str


class GeneratePromptRequest(BaseModel):
    """Request model for a single-ticket prompt"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"taskId": "PA-12345"}}
    )

    task_id: str = Field(..., alias="taskId", min_length=1)


class GeneratePromptResponse(BaseModel):
    """Prompt text to paste into an AI assistant"""
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId")
    task_title: str = Field(..., alias="taskTitle")
    analytics_type: str = Field(..., alias="analyticsType")
    prompt: str
    prompt_path: str = Field(..., alias="promptPath")


class BatchPromptTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId", min_length=1)
    analytics_type: Optional[str] = Field(None, alias="analyticsType")


class GenerateBatchPromptRequest(BaseModel):
    """Request model for one prompt covering several tickets"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"tasks": [{"taskId": "PA-12345"}, {"taskId": "PA-12346", "analyticsType": "homepage"}]}}
    )

    tasks: List[BatchPromptTask] = Field(..., min_length=1)


class GenerateBatchPromptResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_ids: List[str] = Field(..., alias="taskIds")
    prompt: str
    prompt_path: str = Field(..., alias="promptPath")


class ProcessResponseRequest(BaseModel):
    """Pasted AI response for one ticket (single array or batch object)"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"taskId": "PA-12345", "response": "[{\"name\": \"...\"}]"}}
    )

    task_id: str = Field(..., alias="taskId", min_length=1)
    response: str = Field(..., min_length=1)
    task_title: Optional[str] = Field(None, alias="taskTitle")
    analytics_type: Optional[str] = Field(None, alias="analyticsType")


class UploadSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_id: int = Field(..., alias="folderId")
    folder_name: str = Field(..., alias="folderName")
    created_count: int = Field(..., alias="createdCount")
    failed_count: int = Field(..., alias="failedCount")
    created_test_case_ids: List[str] = Field(default_factory=list, alias="createdTestCaseIds")
    failed_test_cases: List[str] = Field(default_factory=list, alias="failedTestCases")


class ProcessResponseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    task_id: str = Field(..., alias="taskId")
    test_case_count: int = Field(..., alias="testCaseCount")
    browserstack: UploadSummary
