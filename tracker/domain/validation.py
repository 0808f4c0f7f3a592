from collections.abc import Mapping
from typing import Any
from tracker.domain.enums import DEFAULT_STATUSES, TaskStatus, TaskType, priority_or_none, status_or_none, type_or_none
from tracker.domain.errors import TaskValidationError, Violation, ViolationCode
from tracker.domain.task import Task
from tracker.domain.timestamps import parse_instant


### COMMENTS
# ==========================================================
# Walidacja żądań create/update (domain/validation.py).
# ==========================================================
# - Czyste funkcje, bez I/O; działają na surowym payloadzie (klucze camelCase).
# - Każda reguła ma własny ViolationCode.
# - Zbieramy WSZYSTKIE naruszenia i rzucamy jeden TaskValidationError.
# - Wartość None dla status/priority/type znaczy "nie podano".
# - Pusty string w description to błąd; jedyny sposób, by nie zmieniać pola,
#   to go pominąć.

IMMUTABLE_ON_UPDATE = ("id", "type", "createdAt", "parentId")
VARIANT_FIELDS = {
    "assignee": TaskType.BUG,
    "storyPoints": TaskType.STORY,
    "epicId": TaskType.STORY,
    "features": TaskType.EPIC,
}


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _is_non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_story_points(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    return isinstance(value, int) and value >= 0


def _require_mapping(payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise TaskValidationError("payload", "Payload must be an object", ViolationCode.NOT_A_RECORD)


def _check_common(payload: Mapping[str, Any], statuses: frozenset[TaskStatus], out: list[Violation]) -> None:
    """Reguły wspólne dla create i update (poza title i deadline)."""
    if "description" in payload and not _is_non_empty_text(payload["description"]):
        out.append(Violation(ViolationCode.DESCRIPTION_EMPTY, "description", "Task description cannot be an empty string"))

    status = payload.get("status")
    if status is not None and status_or_none(status, statuses) is None:
        allowed = ", ".join(sorted(s.value for s in statuses))
        out.append(Violation(ViolationCode.INVALID_STATUS, "status", f"Invalid status. Must be one of: {allowed}"))

    priority = payload.get("priority")
    if priority is not None and priority_or_none(priority) is None:
        out.append(Violation(ViolationCode.INVALID_PRIORITY, "priority", "Invalid priority. Must be one of: low, medium, high"))

    if "assignee" in payload and not _is_non_empty_text(payload["assignee"]):
        out.append(Violation(ViolationCode.ASSIGNEE_EMPTY, "assignee", "Assignee cannot be empty"))

    if "storyPoints" in payload and not is_story_points(payload["storyPoints"]):
        out.append(Violation(ViolationCode.INVALID_STORY_POINTS, "storyPoints", "Story points must be a non-negative integer"))

    if "epicId" in payload and _is_blank(payload["epicId"]):
        out.append(Violation(ViolationCode.EPIC_EMPTY, "epicId", "Epic ID cannot be empty"))

    if "features" in payload:
        features = payload["features"]
        if not isinstance(features, (list, tuple)):
            out.append(Violation(ViolationCode.FEATURES_NOT_A_LIST, "features", "Features must be an array"))
        elif not all(_is_non_empty_text(f) for f in features):
            out.append(Violation(ViolationCode.FEATURE_EMPTY, "features", "All features must be non-empty strings"))


def validate_create(payload: Any, statuses: frozenset[TaskStatus] = DEFAULT_STATUSES) -> None:
    """
        Sprawdza payload tworzenia zadania.

        :param payload: Słownik z polami CreateTaskInput (camelCase).
        :param statuses: Rozpoznawany zbiór statusów.
        :raises TaskValidationError: Ze wszystkimi naruszeniami naraz.
    """
    _require_mapping(payload)
    out: list[Violation] = []

    title = payload.get("title")
    if title is None:
        out.append(Violation(ViolationCode.TITLE_REQUIRED, "title", "Task title is required and cannot be empty"))
    elif not _is_non_empty_text(title):
        out.append(Violation(ViolationCode.TITLE_EMPTY, "title", "Task title is required and cannot be empty"))

    if "id" in payload and _is_blank(payload["id"]):
        out.append(Violation(ViolationCode.ID_EMPTY, "id", "Task id cannot be empty"))

    _check_common(payload, statuses, out)

    deadline = payload.get("deadline")
    if deadline not in (None, "") and parse_instant(deadline) is None:
        out.append(Violation(ViolationCode.INVALID_DEADLINE, "deadline", "Invalid deadline date"))

    raw_type = payload.get("type")
    task_type = type_or_none(raw_type) if raw_type is not None else TaskType.TASK
    if task_type is None:
        out.append(Violation(ViolationCode.INVALID_TYPE, "type", "Invalid task type"))

    if task_type is TaskType.SUBTASK and _is_blank(payload.get("parentId")):
        out.append(Violation(ViolationCode.PARENT_REQUIRED, "parentId", "Subtask requires parentId"))
    elif "parentId" in payload and _is_blank(payload["parentId"]):
        out.append(Violation(ViolationCode.PARENT_EMPTY, "parentId", "Parent ID cannot be empty"))

    if out:
        raise TaskValidationError.from_violations(out)


def validate_update(
    payload: Any,
    existing: Task,
    statuses: frozenset[TaskStatus] = DEFAULT_STATUSES,
    strict_variants: bool = False,
) -> None:
    """
        Sprawdza częściowy payload aktualizacji względem istniejącego zadania.

        - `id`, `type`, `createdAt`, `parentId` są niezmienne → IMMUTABLE_FIELD.
        - `deadline` równy None lub "" oznacza usunięcie terminu.
        - Pola wariantowe innego rodzaju niż `existing` są domyślnie ignorowane
          (serwis je pomija); przy `strict_variants=True` dają WRONG_VARIANT.

        :raises TaskValidationError: Ze wszystkimi naruszeniami naraz.
    """
    _require_mapping(payload)
    out: list[Violation] = []

    for field in IMMUTABLE_ON_UPDATE:
        if field in payload:
            out.append(Violation(ViolationCode.IMMUTABLE_FIELD, field, f"'{field}' cannot be changed after creation"))

    if "title" in payload and not _is_non_empty_text(payload["title"]):
        out.append(Violation(ViolationCode.TITLE_EMPTY, "title", "Task title cannot be empty"))

    _check_common(payload, statuses, out)

    deadline = payload.get("deadline")
    if deadline not in (None, "") and parse_instant(deadline) is None:
        out.append(Violation(ViolationCode.INVALID_DEADLINE, "deadline", "Invalid deadline date"))

    if strict_variants:
        for field, kind in VARIANT_FIELDS.items():
            if field in payload and existing.type is not kind:
                out.append(Violation(
                    ViolationCode.WRONG_VARIANT, field, f"Task {existing.task_id} is a {existing.type}, not a {kind}"
                ))

    if out:
        raise TaskValidationError.from_violations(out)


def validate_filter(params: Any) -> None:
    """Granice dat w filtrze muszą się parsować; status/priority/type nie są sprawdzane
    (nieznana wartość po prostu nic nie dopasuje)."""
    _require_mapping(params)
    out: list[Violation] = []
    for field in ("createdFrom", "createdTo"):
        value = params.get(field)
        if value not in (None, "") and parse_instant(value) is None:
            out.append(Violation(ViolationCode.INVALID_DATE, field, f"Invalid date for '{field}'"))
    if out:
        raise TaskValidationError.from_violations(out)
