# ==============================================
# Folder mapping models
# ==============================================

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from qa_casegen.models.classification_models import AnalyticsDomain


class FolderMapping(BaseModel):
    """Destination folder of one analytics domain"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    domain: AnalyticsDomain = Field(..., min_length=1)
    folder_id: int = Field(..., alias="folderId", gt=0, description="BrowserStack folder ID")
    folder_name: str = Field(..., alias="folderName", min_length=1)


class FoldersConfigFile(BaseModel):
    """Top-level shape of folders.config.json"""
    mappings: List[FolderMapping] = Field(default_factory=list)
