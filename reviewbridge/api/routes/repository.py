"""
Repository endpoints used by the review UI.

Opening a folder, refreshing the diff, staging and unstaging all answer with
the same review state: the diff snapshot, the selected file and the comments.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from reviewbridge.api.dependencies import get_review_service
from reviewbridge.core.exceptions import RepositoryError
from reviewbridge.core.logging_config import get_logger
from reviewbridge.models.requests import FilePathBody, OpenRepositoryBody, SelectionBody
from reviewbridge.services.review_service import ReviewService

router = APIRouter()
logger = get_logger(__name__)

NOT_A_REPOSITORY = "Not a git repository"


def review_state(service: ReviewService) -> Dict[str, Any]:
    selected = None
    if service.selected is not None:
        selected = {"file_path": service.selected[0], "staged": service.selected[1]}
    return {
        "root_path": service.root_path,
        "files": [f.model_dump(mode="json") for f in service.snapshot or []],
        "selected": selected,
        "comments": service.comment_rows(),
    }


@router.post("/repository")
async def open_repository(
    body: OpenRepositoryBody, service: ReviewService = Depends(get_review_service)
):
    """Open a folder as the active repository and load its diff."""
    try:
        await service.open_repository(body.root_path)
    except RepositoryError as e:
        logger.warning(f"Failed to open {body.root_path}: {e.reason}")
        raise HTTPException(status_code=400, detail=NOT_A_REPOSITORY)
    return review_state(service)


@router.get("/diff")
async def get_diff(service: ReviewService = Depends(get_review_service)):
    """Refresh the diff of the open repository."""
    try:
        await service.refresh()
    except RepositoryError as e:
        logger.warning(f"Refresh failed: {e.reason}")
        raise HTTPException(status_code=400, detail=NOT_A_REPOSITORY)
    return review_state(service)


@router.put("/selection")
async def select_file(body: SelectionBody, service: ReviewService = Depends(get_review_service)):
    service.select_file(body.file_path, body.staged)
    return review_state(service)


@router.post("/stage")
async def stage_file(body: FilePathBody, service: ReviewService = Depends(get_review_service)):
    ok = await service.stage(body.file_path)
    return {"success": ok, **review_state(service)}


@router.post("/unstage")
async def unstage_file(body: FilePathBody, service: ReviewService = Depends(get_review_service)):
    ok = await service.unstage(body.file_path)
    return {"success": ok, **review_state(service)}
