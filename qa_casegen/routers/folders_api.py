from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from qa_casegen.clients.browserstack_client import BrowserStackClient
from qa_casegen.deps import get_browserstack_client, get_folder_mapper
from qa_casegen.models.api_models import FolderResponse, VerifyFoldersResponse
from qa_casegen.resolvers.folder_mapper import FolderMapper

router = APIRouter()


@router.get("", response_model=List[FolderResponse])
async def list_folders(folder_mapper: FolderMapper = Depends(get_folder_mapper)) -> List[FolderResponse]:
    """All analytics domain -> BrowserStack folder mappings"""
    return [
        FolderResponse(
            analytics_type=mapping.domain,
            folder_id=mapping.folder_id,
            folder_name=mapping.folder_name,
        )
        for mapping in folder_mapper.get_mapping_records()
    ]


@router.get("/verify", response_model=VerifyFoldersResponse)
def verify_folders(
    folder_mapper: FolderMapper = Depends(get_folder_mapper),
    browserstack: BrowserStackClient = Depends(get_browserstack_client)
) -> VerifyFoldersResponse:
    """
    Check that every configured folder exists in BrowserStack

    Raises:
        MissingConfigError: BrowserStack credentials are missing (HTTP 500)
        BrowserStackClientException: BrowserStack request failed
    """
    missing = folder_mapper.verify_remote_folders(browserstack.folder_exists)
    return VerifyFoldersResponse(
        valid=not missing,
        checked=len(folder_mapper.get_mapping_records()),
        missing_folder_ids=missing,
    )


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(folder_id: int, folder_mapper: FolderMapper = Depends(get_folder_mapper)) -> FolderResponse:
    """Reverse lookup of the analytics domain owning a folder"""
    domain = folder_mapper.get_type_by_folder_id(folder_id)
    if domain is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Folder {folder_id} is not mapped to any analytics type"
        )
    return FolderResponse(
        analytics_type=domain,
        folder_id=folder_id,
        folder_name=folder_mapper.get_folder_name(domain),
    )
