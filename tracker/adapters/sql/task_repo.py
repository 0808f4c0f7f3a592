from __future__ import annotations
from typing import Any
import logging
import sqlalchemy as db
from sqlalchemy.exc import SQLAlchemyError
from pathlib import Path
from tracker.ports.snapshot_repository import Record, TaskSnapshotRepository
from tracker.domain.errors import TaskPersistenceError

logger = logging.getLogger(__name__)

# klucz rekordu -> nazwa kolumny
COLUMNS = {
    "id": "task_id",
    "title": "title",
    "description": "description",
    "createdAt": "created_at",
    "status": "status",
    "priority": "priority",
    "deadline": "deadline",
    "type": "type",
    "parentId": "parent_id",
    "assignee": "assignee",
    "storyPoints": "story_points",
    "epicId": "epic_id",
    "features": "features",
}


class SqlSnapshotRepository(TaskSnapshotRepository):
    def __init__(self, url: str | Path) -> None:
        """
        url: np. 'sqlite:///data/tasks.db' lub Path do pliku (zostanie zrobiony URL)
        """
        if isinstance(url, Path):
            url.parent.mkdir(parents=True, exist_ok=True)
            db_url = f"sqlite:///{url}"
        else:
            db_url = url

        self.engine = db.create_engine(db_url, future=True)
        self.meta = db.MetaData()

        # kolejność snapshotu trzyma `position`, nie task_id
        self.tasks = db.Table(
            "task_records",
            self.meta,
            db.Column("position", db.Integer, primary_key=True, autoincrement=False),
            db.Column("task_id", db.String, nullable=False),
            db.Column("title", db.String, nullable=False),
            db.Column("description", db.String, nullable=True),
            db.Column("created_at", db.String, nullable=False),  # ISO8601 '...Z'
            db.Column("status", db.String, nullable=False),
            db.Column("priority", db.String, nullable=False),
            db.Column("deadline", db.String, nullable=True),
            db.Column("type", db.String, nullable=False, default="task"),
            db.Column("parent_id", db.String, nullable=True),
            db.Column("assignee", db.String, nullable=True),
            db.Column("story_points", db.Integer, nullable=True),
            db.Column("epic_id", db.String, nullable=True),
            db.Column("features", db.JSON, nullable=True),
        )

        # utwórz tabelę jeśli nie istnieje
        try:
            self.meta.create_all(self.engine)
        except SQLAlchemyError as e:
            raise TaskPersistenceError(str(e)) from e

    def _to_row(self, position: int, record: Record) -> dict[str, Any]:
        row: dict[str, Any] = {"position": position}
        for key, column in COLUMNS.items():
            value = record.get(key)
            if key in ("id", "parentId", "epicId") and value is not None:
                value = str(value)
            row[column] = value
        row["type"] = row["type"] or "task"
        return row

    def _from_row(self, row) -> Record:
        record: Record = {}
        for key, column in COLUMNS.items():
            value = row[column]
            if value is not None:
                record[key] = value
        return record

    def load(self) -> list[Record]:
        stmt = db.select(self.tasks).order_by(self.tasks.c.position.asc())
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error("Cannot read task_records: %s", e)
            raise TaskPersistenceError(str(e)) from e
        return [self._from_row(r) for r in rows]

    def save(self, records: list[Record]) -> None:
        """Podmienia całą tabelę w jednej transakcji."""
        rows = [self._to_row(i, r) for i, r in enumerate(records)]
        try:
            with self.engine.begin() as conn:
                conn.execute(db.delete(self.tasks))
                if rows:
                    conn.execute(db.insert(self.tasks), rows)
        except SQLAlchemyError as e:
            logger.error("Cannot write task_records: %s", e)
            raise TaskPersistenceError(str(e)) from e
        logger.debug("Saved %d records to %s", len(rows), self.engine.url)
