from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .errors import ConflictError
from .models import PRIORITY_RANK, STATUS_ORDER, TaskEntity, UserEntity
from .ordering import plan_move
from .repositories import ListQuery, TaskRepository, UserRepository, parse_sort
from .schemas import TaskCreate, utcnow


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    priority: str = "priority"
    status: str = "status"
    due_date: str = "due_date"
    position: str = "position"
    user: str = "user_id"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    name: str = "name"
    email: str = "email"
    password_hash: str = "password_hash"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_T = _TaskCols()
_U = _UserCols()

_UPDATABLE = ("title", "description", "priority", "status", "due_date", "position")


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value else None


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if s is None:
        return None
    return datetime.fromisoformat(s)


def _rank_case(column: str, ranks: Mapping[str, int]) -> str:
    whens = " ".join(f"WHEN '{value}' THEN {rank}" for value, rank in ranks.items())
    return f"CASE {column} {whens} END"


class _SQLiteBase:
    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_U.name} TEXT NOT NULL,
                    {_U.email} TEXT NOT NULL UNIQUE,
                    {_U.password_hash} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL,
                    {_U.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_T.title} TEXT NOT NULL,
                    {_T.description} TEXT NULL,
                    {_T.priority} TEXT NOT NULL DEFAULT 'medium',
                    {_T.status} TEXT NOT NULL DEFAULT 'todo',
                    {_T.due_date} TEXT NULL,
                    {_T.position} INTEGER NOT NULL DEFAULT 0,
                    {_T.user} INTEGER NOT NULL REFERENCES {_U.table}({_U.id}),
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_column "
                f"ON {_T.table}({_T.user}, {_T.status}, {_T.position})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_created_at "
                f"ON {_T.table}({_T.user}, {_T.created_at})"
            )


class SQLiteTaskRepository(_SQLiteBase, TaskRepository):
    """
    Lightweight SQLite repository implementing the TaskRepository interface.
    """

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": int(row[_T.id]),
            "title": str(row[_T.title]),
            "description": row[_T.description],
            "priority": str(row[_T.priority]),
            "status": str(row[_T.status]),
            "due_date": _parse_dt(row[_T.due_date]),
            "position": int(row[_T.position]),
            "user": int(row[_T.user]),
            "created_at": _parse_dt(row[_T.created_at]),  # type: ignore
            "updated_at": _parse_dt(row[_T.updated_at]),  # type: ignore
        }

    def _fetch(self, conn: sqlite3.Connection, task_id: int, user_id: int) -> Optional[TaskEntity]:
        row = conn.execute(
            f"SELECT * FROM {_T.table} WHERE {_T.id} = ? AND {_T.user} = ?", (task_id, user_id)
        ).fetchone()
        return self._row_to_entity(row) if row else None

    def create(self, data: TaskCreate, user_id: int) -> TaskEntity:
        now = _ts(utcnow())
        with self._conn() as conn:
            # Single statement: the column maximum is read and the row inserted atomically
            cur = conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.title}, {_T.description}, {_T.priority}, {_T.status},
                    {_T.due_date}, {_T.position}, {_T.user}, {_T.created_at}, {_T.updated_at})
                SELECT ?, ?, ?, ?, ?, COALESCE(MAX({_T.position}) + 1, 0), ?, ?, ?
                FROM {_T.table}
                WHERE {_T.user} = ? AND {_T.status} = ?
                """,
                (
                    data.title,
                    data.description,
                    data.priority,
                    data.status,
                    _ts(data.due_date),
                    user_id,
                    now,
                    now,
                    user_id,
                    data.status,
                ),
            )
            entity = self._fetch(conn, int(cur.lastrowid), user_id)
            assert entity is not None
            return entity

    def get(self, task_id: int, user_id: int) -> Optional[TaskEntity]:
        with self._conn() as conn:
            return self._fetch(conn, task_id, user_id)

    def update(self, task_id: int, user_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        fields = [k for k in _UPDATABLE if k in changes]
        params: List[Any] = [_ts(changes[k]) if k == "due_date" else changes[k] for k in fields]
        assignments = [f"{getattr(_T, k)} = ?" for k in fields]
        assignments.append(f"{_T.updated_at} = ?")
        params.append(_ts(utcnow()))
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_T.table} SET {', '.join(assignments)} WHERE {_T.id} = ? AND {_T.user} = ?",
                [*params, task_id, user_id],
            )
            if cur.rowcount == 0:
                return None
            return self._fetch(conn, task_id, user_id)

    def delete(self, task_id: int, user_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_T.table} WHERE {_T.id} = ? AND {_T.user} = ?", (task_id, user_id)
            )
            return cur.rowcount > 0

    def list(self, user_id: int, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        clauses = [f"{_T.user} = ?"]
        params: List[Any] = [user_id]

        if q.status is not None:
            clauses.append(f"{_T.status} = ?")
            params.append(q.status)
        if q.priority is not None:
            clauses.append(f"{_T.priority} = ?")
            params.append(q.priority)

        field, reverse = parse_sort(q.sort)
        if field == "priority":
            expr = _rank_case(_T.priority, PRIORITY_RANK)
        elif field == "status":
            expr = _rank_case(_T.status, STATUS_ORDER)
        else:
            expr = getattr(_T, field)
        direction = "DESC" if reverse else "ASC"

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {' AND '.join(clauses)}
                ORDER BY {expr} {direction}, {_T.id} {direction}
                """,
                params,
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def move(self, task_id: int, user_id: int, to_status: str, to_index: int) -> Optional[TaskEntity]:
        with self._conn() as conn:
            # Hold the write lock across read-plan-write
            conn.execute("BEGIN IMMEDIATE")
            if self._fetch(conn, task_id, user_id) is None:
                return None
            rows = conn.execute(f"SELECT * FROM {_T.table} WHERE {_T.user} = ?", (user_id,)).fetchall()
            plan = plan_move([self._row_to_entity(r) for r in rows], task_id, to_status, to_index)
            now = _ts(utcnow())
            conn.executemany(
                f"UPDATE {_T.table} SET {_T.status} = ?, {_T.position} = ?, {_T.updated_at} = ? WHERE {_T.id} = ?",
                [(status, position, now, tid) for tid, (status, position) in plan.items()],
            )
            return self._fetch(conn, task_id, user_id)


class SQLiteUserRepository(_SQLiteBase, UserRepository):
    """SQLite-backed user repository; email uniqueness is enforced by the schema."""

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": int(row[_U.id]),
            "name": str(row[_U.name]),
            "email": str(row[_U.email]),
            "password_hash": str(row[_U.password_hash]),
            "created_at": _parse_dt(row[_U.created_at]),  # type: ignore
            "updated_at": _parse_dt(row[_U.updated_at]),  # type: ignore
        }

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        now = _ts(utcnow())
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    f"""
                    INSERT INTO {_U.table} ({_U.name}, {_U.email}, {_U.password_hash}, {_U.created_at}, {_U.updated_at})
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (name, email.lower(), password_hash, now, now),
                )
                row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.id} = ?", (cur.lastrowid,)).fetchone()
                assert row is not None
                return self._row_to_entity(row)
        except sqlite3.IntegrityError as e:
            raise ConflictError("email", "Email already exists") from e

    def get(self, user_id: int) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.id} = ?", (user_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.email} = ?", (email.lower(),)).fetchone()
            return self._row_to_entity(row) if row else None
