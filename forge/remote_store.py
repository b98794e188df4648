"""Remote store of record: programs and daily logs in a SQL database.

Every public method returns a StoreResult. Driver and connection problems
come back as ErrorKind.UNAVAILABLE, rows that cannot be turned into models
as ErrorKind.SCHEMA; nothing here raises for those.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, create_engine, select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from forge.errors import ErrorKind, StoreResult
from forge.models import DayRecord, Program

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ProgramRow(Base):
    __tablename__ = "forge_programs"

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Text, nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    current_day = Column(Integer, nullable=False, default=1)
    failed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    reset_count = Column(Integer, nullable=False, default=0)


class DailyLogRow(Base):
    __tablename__ = "daily_logs"
    __table_args__ = (
        Index("idx_daily_logs_program_date", "program_id", "date", unique=True),
    )

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Text, nullable=False, index=True)
    program_id = Column(Text, ForeignKey("forge_programs.id"), nullable=False)
    date = Column(Text, nullable=False)
    day_number = Column(Integer, nullable=False, default=1)
    checks = Column(JSON, nullable=False, default=dict)
    custom_tasks = Column(JSON, nullable=False, default=dict)
    steps_actual = Column(Integer)
    notes = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))


def _utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_program(row: ProgramRow) -> Program:
    return Program(
        id=str(row.id),
        owner_id=str(row.user_id),
        started_at=_utc(row.started_at),
        current_day=int(row.current_day),
        failed_at=_utc(row.failed_at),
        completed_at=_utc(row.completed_at),
        reset_count=int(row.reset_count or 0),
    )


def _to_record(row: DailyLogRow) -> DayRecord:
    if not isinstance(row.checks or {}, dict) or not isinstance(row.custom_tasks or {}, dict):
        raise ValueError(f"daily log {row.id} has non-object checks/custom_tasks")
    completed_at = _utc(row.completed_at)
    return DayRecord(
        checks={str(k): bool(v) for k, v in (row.checks or {}).items()},
        custom_tasks={str(k): str(v) for k, v in (row.custom_tasks or {}).items() if v},
        steps_actual=int(row.steps_actual) if row.steps_actual is not None else None,
        notes=str(row.notes or ""),
        completed_at=completed_at.isoformat(timespec="seconds") if completed_at else None,
        program_id=str(row.program_id),
        day_number=int(row.day_number),
    )


class RemoteStore:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_url(cls, url: str, create_schema: bool = True) -> RemoteStore:
        kwargs: dict = {"echo": False}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        store = cls(create_engine(url, **kwargs))
        if create_schema:
            result = store.create_schema()
            if not result.ok:
                logger.warning("Remote schema setup failed: %s", result.error)
        return store

    def create_schema(self) -> StoreResult[None]:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            return StoreResult.failure(ErrorKind.UNAVAILABLE, str(e))
        return StoreResult.success()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._sessions()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _run(self, op: str, fn):
        try:
            with self._session() as db:
                return fn(db)
        except SQLAlchemyError as e:
            logger.warning("Remote %s failed: %s", op, e)
            return StoreResult.failure(ErrorKind.UNAVAILABLE, str(e))
        except (ValueError, TypeError) as e:
            logger.warning("Remote %s returned unusable data: %s", op, e)
            return StoreResult.failure(ErrorKind.SCHEMA, str(e))

    # ── Programs ──────────────────────────────────────────────

    def find_active_program(self, owner_id: str) -> StoreResult[Program]:
        def op(db: Session) -> StoreResult[Program]:
            row = db.execute(
                select(ProgramRow)
                .where(ProgramRow.user_id == owner_id)
                .where(ProgramRow.failed_at.is_(None))
                .where(ProgramRow.completed_at.is_(None))
                .order_by(ProgramRow.started_at.desc())
                .limit(1)
            ).scalar_one_or_none()
            return StoreResult.success(_to_program(row) if row is not None else None)

        return self._run("find_active_program", op)

    def list_programs(self, owner_id: str) -> StoreResult[list[Program]]:
        """All programs for *owner_id*, newest first."""
        def op(db: Session) -> StoreResult[list[Program]]:
            rows = db.execute(
                select(ProgramRow)
                .where(ProgramRow.user_id == owner_id)
                .order_by(ProgramRow.started_at.desc())
            ).scalars().all()
            return StoreResult.success([_to_program(r) for r in rows])

        return self._run("list_programs", op)

    def get_program(self, program_id: str) -> StoreResult[Program]:
        def op(db: Session) -> StoreResult[Program]:
            row = db.get(ProgramRow, program_id)
            if row is None:
                return StoreResult.failure(ErrorKind.NOT_FOUND, f"program {program_id}")
            return StoreResult.success(_to_program(row))

        return self._run("get_program", op)

    def insert_program(self, owner_id: str, started_at: datetime, reset_count: int = 0) -> StoreResult[Program]:
        def op(db: Session) -> StoreResult[Program]:
            row = ProgramRow(
                id=str(uuid.uuid4()),
                user_id=owner_id,
                started_at=_utc(started_at),
                current_day=1,
                reset_count=reset_count,
            )
            db.add(row)
            db.flush()
            return StoreResult.success(_to_program(row))

        return self._run("insert_program", op)

    def update_program(
        self,
        program_id: str,
        *,
        current_day: int | None = None,
        failed_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> StoreResult[Program]:
        """Apply the given fields; None leaves a field unchanged."""
        def op(db: Session) -> StoreResult[Program]:
            row = db.get(ProgramRow, program_id)
            if row is None:
                return StoreResult.failure(ErrorKind.NOT_FOUND, f"program {program_id}")
            if current_day is not None:
                row.current_day = current_day
            if failed_at is not None:
                row.failed_at = _utc(failed_at)
            if completed_at is not None:
                row.completed_at = _utc(completed_at)
            db.flush()
            return StoreResult.success(_to_program(row))

        return self._run("update_program", op)

    # ── Daily logs ────────────────────────────────────────────

    def get_daily_log(self, program_id: str, day_key: str) -> StoreResult[DayRecord]:
        """The log for (program, day); value None when no row exists yet."""
        def op(db: Session) -> StoreResult[DayRecord]:
            row = db.execute(
                select(DailyLogRow)
                .where(DailyLogRow.program_id == program_id)
                .where(DailyLogRow.date == day_key)
            ).scalar_one_or_none()
            return StoreResult.success(_to_record(row) if row is not None else None)

        return self._run("get_daily_log", op)

    def upsert_daily_log(
        self,
        owner_id: str,
        program_id: str,
        day_key: str,
        day_number: int,
        record: DayRecord,
        completed: bool,
        now: datetime,
    ) -> StoreResult[bool]:
        """Write the log for (program, day).

        The value is True when this write completed the day for the first
        time; unchecking and rechecking a task does not count twice.
        day_number is only used when the row is created.
        """
        def op(db: Session) -> StoreResult[bool]:
            row = db.execute(
                select(DailyLogRow)
                .where(DailyLogRow.program_id == program_id)
                .where(DailyLogRow.date == day_key)
            ).scalar_one_or_none()
            was_completed = row is not None and row.completed_at is not None
            if row is None:
                row = DailyLogRow(
                    id=str(uuid.uuid4()),
                    user_id=owner_id,
                    program_id=program_id,
                    date=day_key,
                    day_number=day_number,
                )
                db.add(row)
            row.checks = dict(record.checks)
            row.custom_tasks = dict(record.custom_tasks)
            row.steps_actual = record.steps_actual
            row.notes = record.notes
            row.completed = completed
            if completed and row.completed_at is None:
                row.completed_at = _utc(now)
            db.flush()
            return StoreResult.success(completed and not was_completed)

        return self._run("upsert_daily_log", op)
