"""
Classroom business logic.

Operations:
- register students under a teacher (idempotent, one transaction)
- students common to a set of teachers
- suspend a student
- recipients of a teacher's notification

Everything goes through the `Store` contract; nothing here knows about SQL or
HTTP. Failures are raised as `core.errors` types and mapped by the API layer.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from core import errors

from . import mentions
from .repository import Store

logger = logging.getLogger(__name__)


def _normalize(email: str, *, field: str) -> str:
    normalized = mentions.normalize_email(email)
    if not mentions.is_valid_email(normalized):
        raise errors.ValidationError(f"{field} must be a valid email address")
    return normalized


def _normalize_unique(emails: Iterable[str], *, field: str) -> list[str]:
    # Keeps first-seen order; duplicates collapse after lower-casing.
    seen: dict[str, None] = {}
    for email in emails:
        seen.setdefault(_normalize(email, field=field), None)
    return list(seen)


async def register_students(store: Store, teacher_email: str, student_emails: Sequence[str]) -> None:
    """
    Link every student to the teacher, creating missing rows on the way.

    Either all rows are created/linked or none are.
    """
    teacher_email = _normalize(teacher_email, field="Teacher")
    if isinstance(student_emails, str) or not student_emails:
        raise errors.ValidationError("At least one student email is required")
    normalized_students = [_normalize(email, field="Student") for email in student_emails]

    async def _work(tx: Store) -> tuple[int, int]:
        teacher, _ = await tx.find_or_create_teacher(teacher_email)
        created_students = 0
        created_links = 0
        for student_email in normalized_students:
            student, student_created = await tx.find_or_create_student(
                student_email, default_suspended=False
            )
            _, link_created = await tx.find_or_create_registration(teacher.id, student.id)
            created_students += int(student_created)
            created_links += int(link_created)
        return created_students, created_links

    created_students, created_links = await store.run_in_transaction(_work)
    logger.info(
        "students_registered teacher=%s requested=%s new_students=%s new_links=%s",
        teacher_email,
        len(normalized_students),
        created_students,
        created_links,
    )


async def common_students(store: Store, teacher_emails: Iterable[str]) -> list[str]:
    """
    Emails of students registered to every given teacher, sorted.

    Raises NotFoundError naming all unknown teachers.
    """
    if isinstance(teacher_emails, str):
        teacher_emails = [teacher_emails]
    emails = _normalize_unique(teacher_emails, field="Teacher")
    if not emails:
        raise errors.ValidationError("At least one teacher email is required")

    teachers = await store.find_teachers_by_emails(emails)
    found = {t.email for t in teachers}
    missing = [email for email in emails if email not in found]
    if missing:
        raise errors.NotFoundError(
            f"Teachers not found: {', '.join(missing)}",
            missing=missing,
        )

    students = await store.find_students_registered_to_all_teachers([t.id for t in teachers])
    logger.debug("common_students teachers=%s count=%s", len(teachers), len(students))
    return sorted({s.email for s in students})


async def suspend_student(store: Store, student_email: str) -> None:
    student_email = _normalize(student_email, field="Student")

    student = await store.find_student_by_email(student_email)
    if student is None:
        raise errors.NotFoundError(
            f"Student not found: {student_email}",
            missing=[student_email],
        )

    if student.suspended:
        logger.debug("student_already_suspended email=%s", student_email)
        return None

    await store.save_student(student.suspend())
    logger.info("student_suspended email=%s", student_email)


async def retrieve_for_notifications(
    store: Store,
    teacher_email: str,
    notification: str,
) -> list[str]:
    """
    Non-suspended students who should receive the notification, sorted.

    Recipients are the teacher's registered students plus any stored student
    @mentioned in the text. An unknown teacher is not an error here: only the
    mentions count. (Common-students does treat it as an error.)
    """
    teacher_email = _normalize(teacher_email, field="Teacher")
    recipients: set[str] = set()

    teacher = await store.find_teacher_by_email(teacher_email)
    if teacher is not None:
        registered = await store.find_students_registered_to_teacher_and_not_suspended(teacher.id)
        recipients.update(s.email for s in registered)

    mentioned = {mentions.normalize_email(e) for e in mentions.extract_mentions(notification or "")}
    if mentioned:
        students = await store.find_students_by_emails_and_not_suspended(sorted(mentioned))
        recipients.update(s.email for s in students)

    logger.debug(
        "notification_recipients teacher=%s teacher_found=%s mentions=%s recipients=%s",
        teacher_email,
        teacher is not None,
        len(mentioned),
        len(recipients),
    )
    return sorted(recipients)
