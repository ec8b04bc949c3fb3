from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Branch, StaffUser, Student
from .repository import ParticipantRepository

STUDENT_COLUMNS = "id, name, photo, branch_id, adcoin_balance, is_active, created_at"
STAFF_COLUMNS = "id, name, username, password_hash, role, branch_id, photo, is_active"


def row_to_student(r: Dict[str, Any]) -> Student:
    return Student(
        student_id=str(r["id"]),
        name=r["name"],
        branch_id=r.get("branch_id"),
        adcoin_balance=int(r.get("adcoin_balance") or 0),
        photo=r.get("photo"),
        is_active=bool(r.get("is_active", True)),
        created_at=r.get("created_at"),
    )


def row_to_staff(r: Dict[str, Any]) -> StaffUser:
    return StaffUser(
        staff_id=str(r["id"]),
        name=r["name"],
        username=r["username"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        branch_id=r.get("branch_id"),
        photo=r.get("photo"),
        is_active=bool(r.get("is_active", True)),
    )


def _in_clause(values: Sequence[str]) -> str:
    return ", ".join(["%s"] * len(values))


class MySQLParticipantRepository(ParticipantRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_student(self, student_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {STUDENT_COLUMNS} FROM students WHERE id=%s", (student_id,))
            row = fetchone(cur)
            return row_to_student(row) if row else None

    def get_staff(self, staff_id: str) -> Optional[StaffUser]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {STAFF_COLUMNS} FROM staff_users WHERE id=%s", (staff_id,))
            row = fetchone(cur)
            return row_to_staff(row) if row else None

    def get_staff_by_username(self, username: str) -> Optional[StaffUser]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {STAFF_COLUMNS} FROM staff_users WHERE username=%s", (username,))
            row = fetchone(cur)
            return row_to_staff(row) if row else None

    def get_students_by_ids(self, student_ids: Iterable[str]) -> Sequence[Student]:
        ids = sorted({str(i) for i in student_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {STUDENT_COLUMNS} FROM students WHERE id IN ({_in_clause(ids)})", tuple(ids))
            return [row_to_student(r) for r in fetchall(cur)]

    def get_staff_by_ids(self, staff_ids: Iterable[str]) -> Sequence[StaffUser]:
        ids = sorted({str(i) for i in staff_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {STAFF_COLUMNS} FROM staff_users WHERE id IN ({_in_clause(ids)})", tuple(ids))
            return [row_to_staff(r) for r in fetchall(cur)]

    def list_active_students(self, *, branch_id: Optional[str] = None) -> Sequence[Student]:
        clauses = ["is_active=1"]
        params: list[object] = []
        if branch_id is not None:
            clauses.append("branch_id=%s")
            params.append(branch_id)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {STUDENT_COLUMNS}
                FROM students
                WHERE {where}
                ORDER BY adcoin_balance DESC, created_at ASC, id ASC
                """,
                tuple(params),
            )
            return [row_to_student(r) for r in fetchall(cur)]

    def list_active_branches(self, *, branch_id: Optional[str] = None) -> Sequence[Branch]:
        clauses = ["is_active=1"]
        params: list[object] = []
        if branch_id is not None:
            clauses.append("id=%s")
            params.append(branch_id)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, name, is_active FROM branches WHERE {where} ORDER BY name", tuple(params))
            return [
                Branch(branch_id=str(r["id"]), name=r["name"], is_active=bool(r.get("is_active", True)))
                for r in fetchall(cur)
            ]
