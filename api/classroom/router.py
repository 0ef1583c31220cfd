"""
Classroom API endpoints.

Mounted under `/api` by `api/main.py`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from . import schemas, service
from .dependencies import get_store
from .repository import Store

router = APIRouter()


@router.post("/register", status_code=status.HTTP_204_NO_CONTENT)
async def register(
    request: schemas.RegisterRequest,
    store: Store = Depends(get_store),
) -> Response:
    await service.register_students(store, request.teacher, request.students)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/commonstudents", response_model=schemas.CommonStudentsResponse)
async def common_students(
    teacher: list[str] = Query(...),
    store: Store = Depends(get_store),
) -> schemas.CommonStudentsResponse:
    """
    GET /api/commonstudents?teacher=a@x.com&teacher=b@x.com
    """
    students = await service.common_students(store, teacher)
    return schemas.CommonStudentsResponse(students=students)


@router.post("/suspend", status_code=status.HTTP_204_NO_CONTENT)
async def suspend(
    request: schemas.SuspendRequest,
    store: Store = Depends(get_store),
) -> Response:
    await service.suspend_student(store, request.student)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/retrievefornotifications", response_model=schemas.RecipientsResponse)
async def retrieve_for_notifications(
    request: schemas.NotificationRequest,
    store: Store = Depends(get_store),
) -> schemas.RecipientsResponse:
    recipients = await service.retrieve_for_notifications(store, request.teacher, request.notification)
    return schemas.RecipientsResponse(recipients=recipients)
