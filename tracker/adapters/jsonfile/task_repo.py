from tracker.ports.snapshot_repository import Record, TaskSnapshotRepository
from tracker.domain.errors import TaskPersistenceError
from pathlib import Path
import contextlib
import json
import logging
import os

logger = logging.getLogger(__name__)


class JsonSnapshotRepository(TaskSnapshotRepository):
    """Snapshot jako jedna tablica JSON (indent=2, UTF-8), zapis atomowy."""

    def __init__(self, path: Path) -> None:
        """Inicjalizuje repozytorium JSON.
        Tworzy katalog nadrzędny dla pliku, jeśli nie istnieje."""
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TaskPersistenceError(str(e)) from e

    def load(self) -> list[Record]:
        """Zwraca rekordy z pliku; brak pliku = pusty snapshot."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Cannot read snapshot %s: %s", self.path, e)
            raise TaskPersistenceError(str(e)) from e

        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TaskPersistenceError(f"{self.path.name}: invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise TaskPersistenceError(f"{self.path.name}: expected a JSON array of tasks")
        for index, record in enumerate(data):
            if not isinstance(record, dict):
                raise TaskPersistenceError(f"{self.path.name}[{index}]: task record must be an object")
        return data

    def save(self, records: list[Record]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".swap")
        try:
            with tmp.open("w", encoding="utf-8", newline="\n") as f:
                f.write(json.dumps(records, indent=2, ensure_ascii=False))
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            # TypeError/ValueError: rekord, którego json nie umie zserializować
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            logger.error("Cannot write snapshot %s: %s", self.path, e)
            raise TaskPersistenceError(str(e)) from e
        logger.debug("Saved %d records to %s", len(records), self.path)
