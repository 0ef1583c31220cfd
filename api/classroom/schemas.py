"""
Classroom API schemas (request/response models).
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from . import mentions


def _email(value: str, label: str) -> str:
    normalized = mentions.normalize_email(value)
    if not mentions.is_valid_email(normalized):
        raise ValueError(f"{label} must be a valid email address")
    return normalized


class RegisterRequest(BaseModel):
    teacher: str = Field(..., max_length=mentions.MAX_EMAIL_LENGTH)
    students: list[Annotated[str, Field(max_length=mentions.MAX_EMAIL_LENGTH)]] = Field(
        ..., min_length=1
    )

    @field_validator("teacher")
    @classmethod
    def _teacher_email(cls, value: str) -> str:
        return _email(value, "Teacher")

    @field_validator("students")
    @classmethod
    def _student_emails(cls, value: list[str]) -> list[str]:
        return [_email(item, "Student") for item in value]


class SuspendRequest(BaseModel):
    student: str = Field(..., max_length=mentions.MAX_EMAIL_LENGTH)

    @field_validator("student")
    @classmethod
    def _student_email(cls, value: str) -> str:
        return _email(value, "Student")


class NotificationRequest(BaseModel):
    teacher: str = Field(..., max_length=mentions.MAX_EMAIL_LENGTH)
    notification: str = Field(..., min_length=1)

    @field_validator("teacher")
    @classmethod
    def _teacher_email(cls, value: str) -> str:
        return _email(value, "Teacher")


class CommonStudentsResponse(BaseModel):
    students: list[str]


class RecipientsResponse(BaseModel):
    recipients: list[str]
