"""
Plain row types for the classroom tables.

Rows come back from the store as these frozen dataclasses; nothing here talks
to the database.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Teacher:
    id: int
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Teacher":
        return cls(
            id=int(row["id"]),
            email=str(row["email"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class Student:
    id: int
    email: str
    suspended: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Student":
        return cls(
            id=int(row["id"]),
            email=str(row["email"]),
            suspended=bool(row.get("suspended", False)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def suspend(self) -> "Student":
        return replace(self, suspended=True)


@dataclass(frozen=True)
class Registration:
    id: int
    teacher_id: int
    student_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Registration":
        return cls(
            id=int(row["id"]),
            teacher_id=int(row["teacher_id"]),
            student_id=int(row["student_id"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
