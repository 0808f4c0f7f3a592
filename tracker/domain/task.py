from typing import Any, ClassVar, NewType, TypedDict
from dataclasses import dataclass, replace
from datetime import datetime
from tracker.domain.enums import TaskPriority, TaskStatus, TaskType
from tracker.domain.errors import TaskValidationError, TaskVariantError, ViolationCode
from tracker.domain.timestamps import format_instant

TaskId = NewType("TaskId", str)
# liczbowe id ze starszych snapshotów zostają intami (normalize.coerce_id)


### COMMENTS
# ======================================
# Model domenowy zadania jako "tagged union"
# ======================================
# Zamiast hierarchii klas (Task -> Bug/Story/...) mamy jeden niemutowalny
# rekord `Task` z polami wspólnymi oraz ładunkiem `details`, którego rodzaj
# (`kind`) jest dyskryminatorem `type`.
#
# - Wszystkie klasy są frozen=True: każda "zmiana" zwraca nowy obiekt,
#   a serwis podmienia go w kolekcji.
# - `features` to krotka, więc nawet epik oddany na zewnątrz jest niezmienny.
# - Rozgałęzienia po wariancie to `match self.type`, bez isinstance.


@dataclass(frozen=True)
class PlainDetails:
    kind: ClassVar[TaskType] = TaskType.TASK


@dataclass(frozen=True)
class SubtaskDetails:
    parent_id: TaskId | int
    kind: ClassVar[TaskType] = TaskType.SUBTASK

    def __post_init__(self):
        if self.parent_id is None or not str(self.parent_id).strip():
            raise TaskValidationError("parentId", "Subtask requires parentId", ViolationCode.PARENT_REQUIRED)


@dataclass(frozen=True)
class BugDetails:
    assignee: str | None = None
    kind: ClassVar[TaskType] = TaskType.BUG

    def __post_init__(self):
        if self.assignee is not None and not self.assignee.strip():
            raise TaskValidationError("assignee", "Assignee cannot be empty", ViolationCode.ASSIGNEE_EMPTY)


@dataclass(frozen=True)
class StoryDetails:
    story_points: int | None = None
    epic_id: TaskId | int | None = None
    kind: ClassVar[TaskType] = TaskType.STORY

    def __post_init__(self):
        points = self.story_points
        if points is not None and (isinstance(points, bool) or not isinstance(points, int) or points < 0):
            raise TaskValidationError(
                "storyPoints", "Story points must be a non-negative integer", ViolationCode.INVALID_STORY_POINTS
            )
        if self.epic_id is not None and not str(self.epic_id).strip():
            raise TaskValidationError("epicId", "Epic ID cannot be empty", ViolationCode.EPIC_EMPTY)


@dataclass(frozen=True)
class EpicDetails:
    features: tuple[str, ...] = ()
    kind: ClassVar[TaskType] = TaskType.EPIC

    def __post_init__(self):
        # listy z zewnątrz zamieniamy na krotkę
        object.__setattr__(self, "features", tuple(self.features))
        if any(not isinstance(f, str) or not f.strip() for f in self.features):
            raise TaskValidationError(
                "features", "All features must be non-empty strings", ViolationCode.FEATURE_EMPTY
            )


TaskDetails = PlainDetails | SubtaskDetails | BugDetails | StoryDetails | EpicDetails


class TaskPatch(TypedDict, total=False):
    """Częściowa zmiana pól wspólnych; brak klucza = pole bez zmian."""
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    deadline: datetime | None


PATCHABLE_FIELDS = frozenset(TaskPatch.__annotations__)


@dataclass(frozen=True)
class TaskBase:
    """Pola wspólne wszystkich wariantów, w postaci kanonicznej (wynik normalizacji)."""
    task_id: TaskId | int
    title: str
    created_at: datetime
    status: TaskStatus
    priority: TaskPriority
    type: TaskType = TaskType.TASK
    description: str | None = None
    deadline: datetime | None = None


@dataclass(frozen=True)
class Task:
    """
    Pojedyncze zadanie dowolnego wariantu; niemutowalne; czas w UTC.
    `details` niesie pola specyficzne dla wariantu, `type` jest z nich wyprowadzany.
    """
    task_id: TaskId | int
    title: str
    created_at: datetime
    status: TaskStatus
    priority: TaskPriority
    details: TaskDetails = PlainDetails()
    description: str | None = None
    deadline: datetime | None = None

    @classmethod
    def from_base(cls, base: TaskBase, details: TaskDetails) -> "Task":
        if base.type is not details.kind:
            raise TaskVariantError("type", f"{details.kind} payload cannot build a {base.type} task")
        return cls(
            task_id=base.task_id,
            title=base.title,
            created_at=base.created_at,
            status=base.status,
            priority=base.priority,
            details=details,
            description=base.description,
            deadline=base.deadline,
        )

    @property
    def type(self) -> TaskType:
        return self.details.kind

    def update(self, patch: TaskPatch) -> "Task":
        """
            Zwraca kopię zadania z podmienionymi polami wspólnymi.

            - Zmieniane są tylko klucze obecne w `patch`; reszta zostaje bez zmian.
            - `task_id`, `created_at` i wariant nie podlegają zmianie.

            :param patch: Słownik z podzbiorem pól title/description/status/priority/deadline.
            :raises TaskValidationError: Gdy patch zawiera pole spoza listy.
            :return: Nowy obiekt `Task`.
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise TaskValidationError(field, "Field cannot be updated", ViolationCode.IMMUTABLE_FIELD)
        if not patch:
            return self
        return replace(self, **patch)

    # ---- variant operations ----

    def set_assignee(self, assignee: str | None) -> "Task":
        if self.type is not TaskType.BUG:
            raise TaskVariantError("assignee", f"Only bugs have an assignee, task {self.task_id} is a {self.type}")
        return replace(self, details=BugDetails(assignee))

    def set_story_points(self, points: int | None) -> "Task":
        if self.type is not TaskType.STORY:
            raise TaskVariantError("storyPoints", f"Only stories have story points, task {self.task_id} is a {self.type}")
        return replace(self, details=replace(self.details, story_points=points))

    def set_epic_id(self, epic_id: TaskId | int | None) -> "Task":
        if self.type is not TaskType.STORY:
            raise TaskVariantError("epicId", f"Only stories belong to an epic, task {self.task_id} is a {self.type}")
        return replace(self, details=replace(self.details, epic_id=epic_id))

    def set_features(self, features) -> "Task":
        if self.type is not TaskType.EPIC:
            raise TaskVariantError("features", f"Only epics have features, task {self.task_id} is a {self.type}")
        return replace(self, details=EpicDetails(tuple(features)))

    def add_feature(self, feature: str) -> "Task":
        """Dodaje funkcjonalność do epiku; duplikat nic nie zmienia."""
        if self.type is not TaskType.EPIC:
            raise TaskVariantError("features", f"Only epics have features, task {self.task_id} is a {self.type}")
        if feature in self.details.features:
            return self
        return self.set_features(self.details.features + (feature,))

    def remove_feature(self, feature: str) -> "Task":
        """Usuwa wszystkie dokładne wystąpienia `feature`."""
        if self.type is not TaskType.EPIC:
            raise TaskVariantError("features", f"Only epics have features, task {self.task_id} is a {self.type}")
        return self.set_features(f for f in self.details.features if f != feature)

    # ---- rendering ----

    def info(self) -> str:
        """Wielolinijkowe podsumowanie zadania, zależne od wariantu."""
        d = self.details
        lines = [f"{self.type.value.capitalize()}: {self.title} (ID: {self.task_id})"]
        if self.type is TaskType.SUBTASK:
            lines.append(f"Parent Task ID: {d.parent_id}")
        lines.append(f"Status: {self.status.value}")
        lines.append(f"Priority: {self.priority.value}")

        match self.type:
            case TaskType.BUG:
                lines.append(f"Assignee: {d.assignee}" if d.assignee else "Assignee: Unassigned")
            case TaskType.STORY:
                lines.append(
                    f"Story Points: {d.story_points}" if d.story_points is not None else "Story Points: Not estimated"
                )
                lines.append(f"Epic ID: {d.epic_id}" if d.epic_id else "Epic ID: Not assigned")
            case TaskType.EPIC:
                lines.append(
                    f"Features: {', '.join(d.features)}" if d.features else "Features: No features defined"
                )

        lines.append(f"Created: {format_instant(self.created_at)}")
        if self.description:
            lines.append(f"Description: {self.description}")
        if self.deadline:
            lines.append(f"Deadline: {format_instant(self.deadline)}")
        return "\n".join(lines)

    def to_record(self) -> dict[str, Any]:
        """Płaski rekord JSON (camelCase), ten sam kształt co w snapshotach."""
        record: dict[str, Any] = {
            "id": self.task_id,
            "title": self.title,
        }
        if self.description is not None:
            record["description"] = self.description
        record["createdAt"] = format_instant(self.created_at)
        record["status"] = self.status.value
        record["priority"] = self.priority.value
        if self.deadline is not None:
            record["deadline"] = format_instant(self.deadline)
        record["type"] = self.type.value

        d = self.details
        match self.type:
            case TaskType.SUBTASK:
                record["parentId"] = d.parent_id
            case TaskType.BUG:
                if d.assignee is not None:
                    record["assignee"] = d.assignee
            case TaskType.STORY:
                if d.story_points is not None:
                    record["storyPoints"] = d.story_points
                if d.epic_id is not None:
                    record["epicId"] = d.epic_id
            case TaskType.EPIC:
                record["features"] = list(d.features)
        return record
