from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.teacher_assignments.cache import ResolutionCache, get_resolution_cache
from app.auth.rbac import require_admin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SelectionCreate, SelectionResponse
from . import service

router = APIRouter(
    prefix="/api/v1/student-subject-selections",
    tags=["student-subject-selections"],
    dependencies=[Depends(require_admin)],
)


@router.post(
    "",
    response_model=SelectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_selection(
    payload: SelectionCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.create_selection(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{selection_id}", response_model=SelectionResponse)
async def get_selection(
    selection_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.get_selection(db, selection_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{selection_id}/approve", response_model=SelectionResponse)
async def approve_selection(
    selection_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    try:
        return await service.approve_selection(db, cache, selection_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{selection_id}/reject", response_model=SelectionResponse)
async def reject_selection(
    selection_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.reject_selection(db, selection_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
