from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable
from tracker.domain.enums import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    DEFAULT_STATUSES,
    DEFAULT_TYPE,
    TaskStatus,
    TaskType,
    priority_or_none,
    status_or_none,
    type_or_none,
)
from tracker.domain.errors import TaskValidationError, ViolationCode
from tracker.domain.task import (
    BugDetails,
    EpicDetails,
    PlainDetails,
    StoryDetails,
    SubtaskDetails,
    Task,
    TaskBase,
    TaskDetails,
    TaskId,
)
from tracker.domain.timestamps import parse_instant, to_utc


### COMMENTS
# ==========================================================
# Normalizacja (domain/normalize.py): luźne dane → rekord kanoniczny.
# ==========================================================
# Normalizer jest ŁAGODNY: poza brakiem id/title niczego nie odrzuca.
# - status/priority spoza zbioru → "todo"/"medium",
# - nieparsowalny deadline → pominięty,
# - brak createdAt → bieżąca chwila z zegara (efekt uboczny, celowo).
# Walidator (domain/validation.py) jest ŚCISŁY i działa na ścieżce create/update.
# Oba zachowania są potrzebne: snapshot z dysku ładujemy łagodnie,
# dane od użytkownika sprawdzamy ściśle.


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_id(value: Any) -> TaskId | int:
    """Liczbowe id zostaje liczbą (2 i 2.0 dają 2), reszta to przycięty string.
    Starsze snapshoty z `"id": 1` po zapisie dalej mają liczbę;
    porównania w serwisie idą po `str(id)`."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return TaskId(str(value).strip())


def normalize_base(
    raw: Any,
    *,
    now: Callable[[], datetime] = _utc_now,
    statuses: frozenset[TaskStatus] = DEFAULT_STATUSES,
) -> TaskBase:
    """
        Zamienia luźno typowany rekord na kanoniczny `TaskBase`.

        :param raw: Dowolny obiekt; oczekiwany słownik z kluczami camelCase.
        :param now: Źródło czasu dla brakującego `createdAt`.
        :param statuses: Rozpoznawany zbiór statusów.
        :raises TaskValidationError: Gdy `raw` nie jest słownikiem albo brak/pusty `id` lub `title`.
        :return: `TaskBase` z polami w postaci kanonicznej.
    """
    if not isinstance(raw, Mapping):
        raise TaskValidationError("record", "Task must be an object", ViolationCode.NOT_A_RECORD)
    if raw.get("id") is None:
        raise TaskValidationError("id", "Task id is required", ViolationCode.ID_REQUIRED)
    if raw.get("title") is None:
        raise TaskValidationError("title", "Task title is required", ViolationCode.TITLE_REQUIRED)

    task_id = coerce_id(raw["id"])
    if task_id == "":
        raise TaskValidationError("id", "Task id must be non-empty", ViolationCode.ID_EMPTY)
    title = str(raw["title"])
    if not title.strip():
        raise TaskValidationError("title", "Task title must be non-empty", ViolationCode.TITLE_EMPTY)

    created_at = parse_instant(raw.get("createdAt")) or to_utc(now())
    description = raw.get("description")

    return TaskBase(
        task_id=task_id,
        title=title,
        created_at=created_at,
        status=status_or_none(raw.get("status"), statuses) or DEFAULT_STATUS,
        priority=priority_or_none(raw.get("priority")) or DEFAULT_PRIORITY,
        type=type_or_none(raw.get("type")) or DEFAULT_TYPE,
        description=str(description) if description is not None else None,
        deadline=parse_instant(raw.get("deadline")),
    )


def _lenient_points(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value >= 0:
        return value
    return None


def _optional_id(value: Any) -> TaskId | int | None:
    if value is None:
        return None
    task_id = coerce_id(value)
    return None if task_id == "" else task_id


def details_from_record(task_type: TaskType, raw: Mapping[str, Any]) -> TaskDetails:
    """Buduje ładunek wariantu na podstawie dyskryminatora `type`."""
    match task_type:
        case TaskType.SUBTASK:
            parent_id = _optional_id(raw.get("parentId"))
            if parent_id is None:
                raise TaskValidationError("parentId", "Subtask requires parentId", ViolationCode.PARENT_REQUIRED)
            return SubtaskDetails(parent_id)
        case TaskType.BUG:
            assignee = raw.get("assignee")
            if not isinstance(assignee, str) or not assignee.strip():
                assignee = None
            return BugDetails(assignee)
        case TaskType.STORY:
            return StoryDetails(_lenient_points(raw.get("storyPoints")), _optional_id(raw.get("epicId")))
        case TaskType.EPIC:
            features = raw.get("features")
            if not isinstance(features, (list, tuple)):
                features = ()
            return EpicDetails(tuple(f for f in features if isinstance(f, str) and f.strip()))
        case _:
            return PlainDetails()


def task_from_record(
    raw: Any,
    *,
    now: Callable[[], datetime] = _utc_now,
    statuses: frozenset[TaskStatus] = DEFAULT_STATUSES,
) -> Task:
    """Normalizuje rekord i tworzy odpowiedni wariant zadania.

    Subtask bez `parentId` kończy się `TaskValidationError` (błąd ładowania).
    """
    base = normalize_base(raw, now=now, statuses=statuses)
    return Task.from_base(base, details_from_record(base.type, raw))


def normalize_record(
    raw: Any,
    *,
    now: Callable[[], datetime] = _utc_now,
    statuses: frozenset[TaskStatus] = DEFAULT_STATUSES,
) -> dict[str, Any]:
    """Rekord → rekord kanoniczny. Ponowne wywołanie na wyniku nic nie zmienia."""
    return task_from_record(raw, now=now, statuses=statuses).to_record()
