from enum import Enum

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

    def __str__(self):
        return self.value


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self):
        return self.value


class TaskType(str, Enum):
    TASK = "task"
    SUBTASK = "subtask"
    BUG = "bug"
    STORY = "story"
    EPIC = "epic"

    def __str__(self):
        return self.value


# "review" jest opcjonalny (TRACKER_STATUSES), używa go wersja z tablicą zadań
DEFAULT_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.DONE}
)
DEFAULT_STATUS = TaskStatus.TODO
DEFAULT_PRIORITY = TaskPriority.MEDIUM
DEFAULT_TYPE = TaskType.TASK


def parse_statuses(raw: str) -> frozenset[TaskStatus]:
    """Parsuje listę statusów rozdzieloną przecinkami (np. z TRACKER_STATUSES).

    :raises ValueError: Gdy któryś status nie należy do `TaskStatus`
        albo lista jest pusta.
    """
    names = [p.strip().lower() for p in raw.split(",") if p.strip()]
    if not names:
        raise ValueError("status set cannot be empty")
    return frozenset(TaskStatus(name) for name in names)


def status_or_none(value, statuses: frozenset[TaskStatus]) -> TaskStatus | None:
    """Zwraca status, jeśli `value` należy do rozpoznawanego zbioru; inaczej None."""
    if not isinstance(value, str):
        return None
    try:
        status = TaskStatus(value)
    except ValueError:
        return None
    return status if status in statuses else None


def priority_or_none(value) -> TaskPriority | None:
    if not isinstance(value, str):
        return None
    try:
        return TaskPriority(value)
    except ValueError:
        return None


def type_or_none(value) -> TaskType | None:
    if not isinstance(value, str):
        return None
    try:
        return TaskType(value)
    except ValueError:
        return None
