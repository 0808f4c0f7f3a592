from tracker.ports.snapshot_repository import TaskSnapshotRepository
from tracker.ports.id_provider import IdProvider
from tracker.ports.clock import Clock
from tracker.domain.task import Task, TaskId, TaskPatch
from tracker.domain.enums import DEFAULT_STATUSES, TaskPriority, TaskStatus, TaskType
from tracker.domain.errors import (
    TaskAlreadyExistsError,
    TaskNotFoundError,
    TaskValidationError,
    ViolationCode,
)
from tracker.domain.normalize import coerce_id, task_from_record
from tracker.domain.timestamps import parse_instant
from tracker.domain.validation import validate_create, validate_filter, validate_update
from collections.abc import Mapping
from datetime import datetime
from typing import Any
import logging

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# Warstwa serwisowa (services/task_service.py): magazyn zadań.
# ==========================================================
# Rola:
# - Jedyny właściciel kolekcji zadań w pamięci i jedyny, kto zapisuje snapshot.
# - create/update: najpierw ścisła walidacja, potem łagodna normalizacja.
# - Każda zmiana = nowy niemutowalny `Task` podmieniony w liście + zapis całości.
#
# Zasady:
# - Serwis korzysta wyłącznie z portów (repozytorium, zegar, generator id).
# - Błędy domenowe lecą synchronicznie do wywołującego; brak retry i brak rollbacku
#   (nieudany zapis po zmianie w pamięci zostawia je rozjechane).
# - Brak blokad: jedna instancja = jeden wątek. Integracja sieciowa musi
#   serializować wywołania sama.


def _set_assignee(task: Task, value: Any) -> Task:
    return task.set_assignee(value)


def _set_story_points(task: Task, value: Any) -> Task:
    return task.set_story_points(int(value))


def _set_epic_id(task: Task, value: Any) -> Task:
    return task.set_epic_id(coerce_id(value))


def _set_features(task: Task, value: Any) -> Task:
    return task.set_features(tuple(value))


# patch key -> (wariant, który to pole ma, setter)
VARIANT_SETTERS = {
    "assignee": (TaskType.BUG, _set_assignee),
    "storyPoints": (TaskType.STORY, _set_story_points),
    "epicId": (TaskType.STORY, _set_epic_id),
    "features": (TaskType.EPIC, _set_features),
}

VARIANT_KEYS = ("parentId", "assignee", "storyPoints", "epicId", "features")


class TaskService:
    """
    Magazyn zadań: CRUD, filtrowanie i zapis snapshotu.

    :param repo: Implementacja portu TaskSnapshotRepository.
    :param id_provider: Generator identyfikatorów nowych zadań.
    :param clock: Źródło czasu (UTC).
    :param statuses: Rozpoznawany zbiór statusów (np. z "review").
    :param strict_variants: Czy update ma odrzucać pola innego wariantu
        zamiast je pomijać.
    :raises TaskPersistenceError: Gdy snapshotu nie da się odczytać.
    :raises TaskValidationError: Gdy snapshot zawiera rekord nie do naprawienia
        (brak id/title, subtask bez parentId).
    """
    def __init__(
        self,
        repo: TaskSnapshotRepository,
        id_provider: IdProvider,
        clock: Clock,
        statuses: frozenset[TaskStatus] = DEFAULT_STATUSES,
        strict_variants: bool = False,
    ) -> None:
        self.repo = repo
        self.id_provider = id_provider
        self.clock = clock
        self.statuses = frozenset(statuses)
        self.strict_variants = strict_variants
        self._tasks: list[Task] = []
        self._load()

    def _load(self) -> None:
        records = self.repo.load()
        self._tasks = [task_from_record(r, now=self.clock.now, statuses=self.statuses) for r in records]
        seen: set[str] = set()
        for task in self._tasks:
            if str(task.task_id) in seen:
                logger.warning("Snapshot contains duplicate task id %s", task.task_id)
            seen.add(str(task.task_id))
        logger.info("Loaded %d tasks", len(self._tasks))

    def _persist(self) -> None:
        self.repo.save([t.to_record() for t in self._tasks])

    def _index_of(self, task_id) -> int | None:
        key = str(task_id)
        for i, task in enumerate(self._tasks):
            if str(task.task_id) == key:
                return i
        return None

    def _require_index(self, task_id) -> int:
        index = self._index_of(task_id)
        if index is None:
            raise TaskNotFoundError(str(task_id))
        return index

    # ---- reads ----

    def get_all(self) -> list[Task]:
        """Wszystkie zadania w kolejności wstawiania (nowa lista przy każdym wywołaniu)."""
        return list(self._tasks)

    def count(self) -> int:
        return len(self._tasks)

    def get_by_id(self, task_id) -> Task | None:
        """Zwraca zadanie albo None; porównanie po `str(id)`, więc 2 == "2"."""
        index = self._index_of(task_id)
        return None if index is None else self._tasks[index]

    def get_task(self, task_id) -> Task:
        """
            Zwraca pojedyncze zadanie o wskazanym identyfikatorze.

            :raises TaskNotFoundError: Gdy nie znaleziono zadania.
        """
        return self._tasks[self._require_index(task_id)]

    def task_info(self, task_id) -> str:
        return self.get_task(task_id).info()

    # ---- writes ----

    def create(self, payload: Mapping[str, Any]) -> Task:
        """
            Tworzy nowe zadanie i zapisuje snapshot.

            - Walidacja: `validate_create` (wszystkie naruszenia naraz).
            - `id`: jawne z payloadu (jeśli podane i wolne) albo z `id_provider`.
            - `createdAt`: `clock.now()`; status/priority domyślnie todo/medium.
            - Wariant wybierany po `type` (domyślnie "task").

            :param payload: Słownik CreateTaskInput (camelCase).
            :raises TaskValidationError: Gdy payload jest niepoprawny.
            :raises TaskAlreadyExistsError: Gdy jawne `id` jest już zajęte.
            :raises TaskPersistenceError: Gdy zapis się nie powiódł.
            :return: Utworzony obiekt `Task`.
        """
        validate_create(payload, self.statuses)

        if payload.get("id") is not None:
            task_id = coerce_id(payload["id"])
            if self._index_of(task_id) is not None:
                raise TaskAlreadyExistsError(str(task_id))
        else:
            task_id = self.id_provider.new_id([t.task_id for t in self._tasks])

        record: dict[str, Any] = {
            "id": task_id,
            "title": payload["title"].strip(),
            "createdAt": self.clock.now(),
            "status": payload.get("status"),
            "priority": payload.get("priority"),
            "type": payload.get("type") or TaskType.TASK.value,
        }
        if payload.get("description") is not None:
            record["description"] = payload["description"].strip()
        if payload.get("deadline") not in (None, ""):
            record["deadline"] = payload["deadline"]
        for key in VARIANT_KEYS:
            if key in payload:
                record[key] = payload[key]

        task = task_from_record(record, now=self.clock.now, statuses=self.statuses)
        self._tasks.append(task)
        self._persist()
        logger.info("Created %s %s", task.type, task.task_id)
        return task

    def update(self, task_id, patch: Mapping[str, Any]) -> Task:
        """
            Częściowa aktualizacja: zmieniane są tylko pola obecne w `patch`.

            - Pola wspólne przez `Task.update`.
            - Pola wariantowe (assignee, storyPoints, epicId, features) tylko gdy
              zadanie jest tego wariantu; w przeciwnym razie są pomijane
              (albo odrzucane przy `strict_variants=True`).
            - `deadline` równy None lub "" usuwa termin.

            :raises TaskNotFoundError: Gdy brak zadania o `task_id`.
            :raises TaskValidationError: Gdy patch jest niepoprawny.
            :return: Zaktualizowany obiekt `Task`.
        """
        index = self._require_index(task_id)
        existing = self._tasks[index]
        validate_update(patch, existing, self.statuses, self.strict_variants)

        changes: TaskPatch = {}
        if "title" in patch:
            changes["title"] = patch["title"].strip()
        if "description" in patch:
            changes["description"] = patch["description"].strip()
        if patch.get("status") is not None:
            changes["status"] = TaskStatus(patch["status"])
        if patch.get("priority") is not None:
            changes["priority"] = TaskPriority(patch["priority"])
        if "deadline" in patch:
            changes["deadline"] = parse_instant(patch["deadline"])

        updated = existing.update(changes)

        for key, (kind, setter) in VARIANT_SETTERS.items():
            if key not in patch:
                continue
            if updated.type is kind:
                updated = setter(updated, patch[key])
            else:
                logger.debug("Ignoring %s for %s %s", key, updated.type, updated.task_id)

        self._tasks[index] = updated
        self._persist()
        logger.info("Updated %s %s", updated.type, updated.task_id)
        return updated

    def delete(self, task_id) -> None:
        """
            Usuwa zadanie z kolekcji i zapisuje snapshot.

            :raises TaskNotFoundError: Gdy nie znaleziono zadania.
        """
        index = self._require_index(task_id)
        removed = self._tasks.pop(index)
        self._persist()
        logger.info("Deleted %s %s", removed.type, removed.task_id)

    def add_feature(self, task_id, feature: str) -> Task:
        """Dodaje funkcjonalność do epiku (duplikat to no-op, bez zapisu)."""
        return self._change_features(task_id, feature, add=True)

    def remove_feature(self, task_id, feature: str) -> Task:
        """Usuwa z epiku wszystkie dokładne wystąpienia `feature`."""
        return self._change_features(task_id, feature, add=False)

    def _change_features(self, task_id, feature: str, add: bool) -> Task:
        if not isinstance(feature, str) or not feature.strip():
            raise TaskValidationError("features", "Feature cannot be empty", ViolationCode.FEATURE_EMPTY)
        index = self._require_index(task_id)
        task = self._tasks[index]
        updated = task.add_feature(feature) if add else task.remove_feature(feature)
        if updated == task:
            return task
        self._tasks[index] = updated
        self._persist()
        logger.info("Features of epic %s: %s", updated.task_id, ", ".join(updated.details.features) or "-")
        return updated

    # ---- queries ----

    def filter(self, params: Mapping[str, Any] | None = None) -> list[Task]:
        """
            Zwraca zadania spełniające WSZYSTKIE podane kryteria, w oryginalnej kolejności.

            - status / priority / type: równość wartości (nieznana wartość → pusta lista),
            - createdFrom / createdTo: granice włącznie,
            - brak klucza lub pusta wartość = brak ograniczenia.

            :raises TaskValidationError: Gdy granica daty się nie parsuje.
        """
        params = params or {}
        validate_filter(params)

        wanted = {
            key: str(params[key])
            for key in ("status", "priority", "type")
            if params.get(key) not in (None, "")
        }
        created_from = parse_instant(params.get("createdFrom"))
        created_to = parse_instant(params.get("createdTo"))

        result = []
        for task in self._tasks:
            if "status" in wanted and task.status.value != wanted["status"]:
                continue
            if "priority" in wanted and task.priority.value != wanted["priority"]:
                continue
            if "type" in wanted and task.type.value != wanted["type"]:
                continue
            if created_from and task.created_at < created_from:
                continue
            if created_to and task.created_at > created_to:
                continue
            result.append(task)
        return result

    def is_completed_before_deadline(self, task: Task, completed_at: str | datetime | None = None) -> bool:
        """
            Czy zakończenie w chwili `completed_at` mieści się w terminie.

            - Zadanie bez `deadline` jest zawsze "na czas".
            - Status zadania nie ma znaczenia (porównanie jest takie samo dla "done" i reszty).
            - `completed_at` domyślnie = `clock.now()`.

            :raises TaskValidationError: Gdy `completed_at` nie jest poprawną datą.
        """
        if task.deadline is None:
            return True
        if completed_at is None:
            completed = parse_instant(self.clock.now())
        else:
            completed = parse_instant(completed_at)
            if completed is None:
                raise TaskValidationError("completedAt", "Invalid completion date", ViolationCode.INVALID_DATE)
        return completed <= task.deadline
