"""
Shared fixtures: an in-memory Store and an API client wired to it.
"""

import itertools
from dataclasses import replace
from datetime import datetime
from datetime import timezone

import pytest
from fastapi.testclient import TestClient

from classroom.models import Registration
from classroom.models import Student
from classroom.models import Teacher
from core import errors
from main import create_app


def _now():
    return datetime.now(timezone.utc)


class MemoryStore:
    """Dict-backed Store with snapshot/restore transactions."""

    def __init__(self):
        self.teachers = {}
        self.students = {}
        self.registrations = {}
        self._ids = itertools.count(1)
        self.transactions = 0
        # Raise StorageError when this student email is looked up for creation.
        self.fail_on_student = None

    # Helpers for tests -----------------------------------------------------

    def add_teacher(self, email):
        teacher = Teacher(id=next(self._ids), email=email, created_at=_now(), updated_at=_now())
        self.teachers[email] = teacher
        return teacher

    def add_student(self, email, *, suspended=False):
        student = Student(
            id=next(self._ids), email=email, suspended=suspended, created_at=_now(), updated_at=_now()
        )
        self.students[email] = student
        return student

    def link(self, teacher, student):
        registration = Registration(
            id=next(self._ids),
            teacher_id=teacher.id,
            student_id=student.id,
            created_at=_now(),
            updated_at=_now(),
        )
        self.registrations[(teacher.id, student.id)] = registration
        return registration

    # Store contract --------------------------------------------------------

    async def run_in_transaction(self, work):
        snapshot = (dict(self.teachers), dict(self.students), dict(self.registrations))
        self.transactions += 1
        try:
            return await work(self)
        except BaseException:
            self.teachers, self.students, self.registrations = snapshot
            raise

    async def find_or_create_teacher(self, email):
        existing = self.teachers.get(email)
        if existing is not None:
            return existing, False
        return self.add_teacher(email), True

    async def find_or_create_student(self, email, *, default_suspended=False):
        if email == self.fail_on_student:
            raise errors.StorageError(f"simulated failure for {email}")
        existing = self.students.get(email)
        if existing is not None:
            return existing, False
        return self.add_student(email, suspended=default_suspended), True

    async def find_or_create_registration(self, teacher_id, student_id):
        existing = self.registrations.get((teacher_id, student_id))
        if existing is not None:
            return existing, False
        teacher = next(t for t in self.teachers.values() if t.id == teacher_id)
        student = next(s for s in self.students.values() if s.id == student_id)
        return self.link(teacher, student), True

    async def find_teacher_by_email(self, email):
        return self.teachers.get(email)

    async def find_teachers_by_emails(self, emails):
        return [self.teachers[e] for e in sorted(set(emails)) if e in self.teachers]

    async def find_students_registered_to_all_teachers(self, teacher_ids):
        wanted = set(teacher_ids)
        if not wanted:
            return []
        result = []
        for student in self.students.values():
            linked = {t for (t, s) in self.registrations if s == student.id}
            if wanted <= linked:
                result.append(student)
        return sorted(result, key=lambda s: s.email)

    async def find_student_by_email(self, email):
        return self.students.get(email)

    async def find_students_by_emails_and_not_suspended(self, emails):
        return [
            self.students[e]
            for e in sorted(set(emails))
            if e in self.students and not self.students[e].suspended
        ]

    async def find_students_registered_to_teacher_and_not_suspended(self, teacher_id):
        ids = {s for (t, s) in self.registrations if t == teacher_id}
        return sorted(
            (s for s in self.students.values() if s.id in ids and not s.suspended),
            key=lambda s: s.email,
        )

    async def save_student(self, student):
        if student.email not in self.students:
            raise errors.NotFoundError(f"Student not found: {student.email}", missing=[student.email])
        saved = replace(student, updated_at=_now())
        self.students[student.email] = saved
        return saved


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(store):
    app = create_app(store=store)
    with TestClient(app) as test_client:
        yield test_client
