from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import ensure_admin_or_teacher, require_admin
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import authorization, auditor, resolver, service
from .cache import ResolutionCache, get_resolution_cache
from .schemas import (
    AssignAllRequest,
    AssignAllResult,
    AssignSubjectRequest,
    AuditReport,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    ClassRef,
    DiagnoseResult,
    MarkEntryAuthorizationRequest,
    ResolvedSubject,
    StoreMutationCounts,
    StudentRef,
    SubjectRef,
    TeacherRef,
)

router = APIRouter(prefix="/api/v1/teacher-assignments", tags=["teacher-assignments"])


@router.get(
    "/teachers/{teacher_id}/classes/{class_id}/subjects",
    response_model=List[ResolvedSubject],
)
async def get_teacher_subjects_in_class(
    teacher_id: UUID,
    class_id: UUID,
    include_derived: bool = Query(False),
    use_cache: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, teacher_id)
    return await resolver.resolve(
        db, cache, teacher_id, class_id, include_derived=include_derived, use_cache=use_cache
    )


@router.get(
    "/teachers/{teacher_id}/classes/{class_id}/subjects/{subject_id}/students",
    response_model=List[StudentRef],
)
async def get_eligible_students(
    teacher_id: UUID,
    class_id: UUID,
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, teacher_id)
    students = await authorization.eligible_students_for(db, cache, teacher_id, class_id, subject_id)
    return [StudentRef.model_validate(s) for s in students]


@router.get(
    "/teachers/{teacher_id}/classes/{class_id}/students",
    response_model=List[StudentRef],
)
async def get_teacher_students(
    teacher_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, teacher_id)
    students = await authorization.get_teacher_students(db, cache, teacher_id, class_id)
    return [StudentRef.model_validate(s) for s in students]


@router.get(
    "/teachers/{teacher_id}/subjects",
    response_model=List[SubjectRef],
)
async def get_all_teacher_subjects(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, teacher_id)
    subjects = await resolver.get_all_teacher_subjects(db, teacher_id)
    return [SubjectRef.model_validate(s) for s in subjects]


@router.get(
    "/teachers/{teacher_id}/classes",
    response_model=List[ClassRef],
)
async def get_teacher_classes(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, teacher_id)
    classes = await resolver.get_teacher_classes(db, teacher_id)
    return [ClassRef(id=c.id, name=c.name, education_level=c.education_level) for c in classes]


@router.get(
    "/classes/{class_id}/teachers",
    response_model=List[TeacherRef],
    dependencies=[Depends(require_admin)],
)
async def get_class_teachers(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    teachers = await resolver.get_class_teachers(db, class_id)
    return [TeacherRef(id=t.id, name=t.full_name, email=t.email) for t in teachers]


@router.get(
    "/teachers/{teacher_id}/classes/{class_id}/audit",
    response_model=AuditReport,
    dependencies=[Depends(require_admin)],
)
async def audit_teacher_assignments(
    teacher_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await auditor.audit_assignments(db, teacher_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/teachers/{teacher_id}/classes/{class_id}/diagnose-and-fix",
    response_model=DiagnoseResult,
    dependencies=[Depends(require_admin)],
)
async def diagnose_and_fix_teacher_assignments(
    teacher_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    try:
        return await service.diagnose_and_fix(db, cache, teacher_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/assign-subject",
    response_model=StoreMutationCounts,
    dependencies=[Depends(require_admin)],
)
async def assign_subject(
    payload: AssignSubjectRequest,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    try:
        return await service.assign_subject(db, cache, payload.teacher_id, payload.class_id, payload.subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/assign-all",
    response_model=AssignAllResult,
    dependencies=[Depends(require_admin)],
)
async def assign_all_subjects_in_class(
    payload: AssignAllRequest,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    try:
        return await service.assign_all_subjects_in_class(db, cache, payload.teacher_id, payload.class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/unassign-subject",
    response_model=StoreMutationCounts,
    dependencies=[Depends(require_admin)],
)
async def unassign_subject(
    payload: AssignSubjectRequest,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    try:
        return await service.unassign_subject(db, cache, payload.teacher_id, payload.class_id, payload.subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/marks-entry/authorize",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def authorize_mark_entry(
    payload: MarkEntryAuthorizationRequest,
    db: AsyncSession = Depends(get_db),
    cache: ResolutionCache = Depends(get_resolution_cache),
    current_user: CurrentUser = Depends(get_current_user),
):
    await ensure_admin_or_teacher(db, current_user, payload.teacher_id)
    try:
        await authorization.authorize_mark_entry(
            db, cache, payload.teacher_id, payload.class_id, payload.subject_id, payload.student_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/cache/invalidate",
    response_model=CacheInvalidateResponse,
    dependencies=[Depends(require_admin)],
)
async def invalidate_cache(
    payload: CacheInvalidateRequest,
    cache: ResolutionCache = Depends(get_resolution_cache),
):
    if payload.teacher_id is None:
        cache.invalidate_all()
        invalidated = "all"
    else:
        cache.invalidate(payload.teacher_id)
        invalidated = str(payload.teacher_id)
    return CacheInvalidateResponse(invalidated=invalidated, at=datetime.now(timezone.utc))
