"""
Classroom persistence.

`Store` is the contract the service layer is written against. `PostgresStore`
implements it with raw SQL on an asyncpg pool; tests use an in-memory store.

Find-or-create is always two explicit steps: INSERT ... ON CONFLICT DO NOTHING,
then re-read the row when the insert lost the race (or the row already
existed). The unique constraints in the schema are what make it safe.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

import asyncpg

from core import db, errors

from .models import Registration, Student, Teacher

logger = logging.getLogger(__name__)

T = TypeVar("T")

TEACHER_COLUMNS = "id, email, created_at, updated_at"
STUDENT_COLUMNS = "id, email, suspended, created_at, updated_at"
REGISTRATION_COLUMNS = "id, teacher_id, student_id, created_at, updated_at"


class Store(Protocol):
    async def find_or_create_teacher(self, email: str) -> tuple[Teacher, bool]: ...

    async def find_or_create_student(
        self, email: str, *, default_suspended: bool = False
    ) -> tuple[Student, bool]: ...

    async def find_or_create_registration(
        self, teacher_id: int, student_id: int
    ) -> tuple[Registration, bool]: ...

    async def find_teacher_by_email(self, email: str) -> Teacher | None: ...

    async def find_teachers_by_emails(self, emails: Iterable[str]) -> list[Teacher]: ...

    async def find_students_registered_to_all_teachers(
        self, teacher_ids: Iterable[int]
    ) -> list[Student]: ...

    async def find_student_by_email(self, email: str) -> Student | None: ...

    async def find_students_by_emails_and_not_suspended(
        self, emails: Iterable[str]
    ) -> list[Student]: ...

    async def find_students_registered_to_teacher_and_not_suspended(
        self, teacher_id: int
    ) -> list[Student]: ...

    async def save_student(self, student: Student) -> Student: ...

    async def run_in_transaction(self, work: Callable[["Store"], Awaitable[T]]) -> T: ...


class PostgresStore:
    """
    Store backed by Postgres.

    A store built from the pool runs each call on its own pooled connection.
    Inside `run_in_transaction` the work receives a store bound to the single
    connection that owns the transaction.
    """

    def __init__(self, pool: asyncpg.Pool, *, conn: asyncpg.Connection | None = None) -> None:
        self._pool = pool
        self._conn = conn

    @property
    def _executor(self) -> db.Executor:
        return self._conn if self._conn is not None else self._pool

    async def run_in_transaction(self, work: Callable[[Store], Awaitable[T]]) -> T:
        try:
            if self._conn is not None:
                # Nested call: asyncpg turns this into a savepoint.
                async with self._conn.transaction():
                    return await work(self)

            async with self._pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    return await work(PostgresStore(self._pool, conn=conn))
        except db.DRIVER_ERRORS as exc:
            # Raised by BEGIN/COMMIT themselves; query errors are already StorageError.
            raise errors.StorageError(f"Transaction failed: {exc}") from exc

    async def find_or_create_teacher(self, email: str) -> tuple[Teacher, bool]:
        row = await db.fetch_one(
            self._executor,
            f"""
            INSERT INTO teachers (email)
            VALUES ($1)
            ON CONFLICT (email) DO NOTHING
            RETURNING {TEACHER_COLUMNS}
            """,
            email,
        )
        if row is not None:
            logger.debug("teacher_created email=%s", email)
            return Teacher.from_row(row), True

        existing = await self.find_teacher_by_email(email)
        if existing is None:
            raise errors.StorageError(f"Teacher {email} vanished during find-or-create.")
        return existing, False

    async def find_or_create_student(
        self, email: str, *, default_suspended: bool = False
    ) -> tuple[Student, bool]:
        row = await db.fetch_one(
            self._executor,
            f"""
            INSERT INTO students (email, suspended)
            VALUES ($1, $2)
            ON CONFLICT (email) DO NOTHING
            RETURNING {STUDENT_COLUMNS}
            """,
            email,
            default_suspended,
        )
        if row is not None:
            logger.debug("student_created email=%s", email)
            return Student.from_row(row), True

        existing = await self.find_student_by_email(email)
        if existing is None:
            raise errors.StorageError(f"Student {email} vanished during find-or-create.")
        return existing, False

    async def find_or_create_registration(
        self, teacher_id: int, student_id: int
    ) -> tuple[Registration, bool]:
        row = await db.fetch_one(
            self._executor,
            f"""
            INSERT INTO registrations (teacher_id, student_id)
            VALUES ($1, $2)
            ON CONFLICT (teacher_id, student_id) DO NOTHING
            RETURNING {REGISTRATION_COLUMNS}
            """,
            teacher_id,
            student_id,
        )
        if row is not None:
            return Registration.from_row(row), True

        existing = await db.fetch_one(
            self._executor,
            f"""
            SELECT {REGISTRATION_COLUMNS}
            FROM registrations
            WHERE teacher_id = $1
              AND student_id = $2
            """,
            teacher_id,
            student_id,
        )
        if existing is None:
            raise errors.StorageError(
                f"Registration ({teacher_id}, {student_id}) vanished during find-or-create."
            )
        return Registration.from_row(existing), False

    async def find_teacher_by_email(self, email: str) -> Teacher | None:
        row = await db.fetch_one(
            self._executor,
            f"""
            SELECT {TEACHER_COLUMNS}
            FROM teachers
            WHERE email = $1
            """,
            email,
        )
        return Teacher.from_row(row) if row is not None else None

    async def find_teachers_by_emails(self, emails: Iterable[str]) -> list[Teacher]:
        emails = list(emails)
        if not emails:
            return []
        rows = await db.fetch_all(
            self._executor,
            f"""
            SELECT {TEACHER_COLUMNS}
            FROM teachers
            WHERE email = ANY($1::text[])
            ORDER BY email
            """,
            emails,
        )
        return [Teacher.from_row(r) for r in rows]

    async def find_students_registered_to_all_teachers(
        self, teacher_ids: Iterable[int]
    ) -> list[Student]:
        """
        Students whose registration set covers every one of `teacher_ids`.
        """
        teacher_ids = sorted(set(teacher_ids))
        if not teacher_ids:
            return []
        rows = await db.fetch_all(
            self._executor,
            """
            SELECT s.id, s.email, s.suspended, s.created_at, s.updated_at
            FROM students s
            JOIN registrations r ON r.student_id = s.id
            WHERE r.teacher_id = ANY($1::bigint[])
            GROUP BY s.id
            HAVING count(DISTINCT r.teacher_id) = $2
            ORDER BY s.email
            """,
            teacher_ids,
            len(teacher_ids),
        )
        return [Student.from_row(r) for r in rows]

    async def find_student_by_email(self, email: str) -> Student | None:
        row = await db.fetch_one(
            self._executor,
            f"""
            SELECT {STUDENT_COLUMNS}
            FROM students
            WHERE email = $1
            """,
            email,
        )
        return Student.from_row(row) if row is not None else None

    async def find_students_by_emails_and_not_suspended(
        self, emails: Iterable[str]
    ) -> list[Student]:
        emails = sorted(set(emails))
        if not emails:
            return []
        rows = await db.fetch_all(
            self._executor,
            f"""
            SELECT {STUDENT_COLUMNS}
            FROM students
            WHERE email = ANY($1::text[])
              AND suspended = false
            ORDER BY email
            """,
            emails,
        )
        return [Student.from_row(r) for r in rows]

    async def find_students_registered_to_teacher_and_not_suspended(
        self, teacher_id: int
    ) -> list[Student]:
        rows = await db.fetch_all(
            self._executor,
            """
            SELECT s.id, s.email, s.suspended, s.created_at, s.updated_at
            FROM students s
            JOIN registrations r ON r.student_id = s.id
            WHERE r.teacher_id = $1
              AND s.suspended = false
            ORDER BY s.email
            """,
            teacher_id,
        )
        return [Student.from_row(r) for r in rows]

    async def save_student(self, student: Student) -> Student:
        row = await db.fetch_one(
            self._executor,
            f"""
            UPDATE students
            SET suspended = $2,
                updated_at = now()
            WHERE id = $1
            RETURNING {STUDENT_COLUMNS}
            """,
            student.id,
            student.suspended,
        )
        if row is None:
            raise errors.NotFoundError(
                f"Student not found: {student.email}",
                missing=[student.email],
            )
        return Student.from_row(row)
