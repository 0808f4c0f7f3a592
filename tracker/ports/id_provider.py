from typing import Protocol, Sequence
from tracker.domain.task import TaskId

class IdProvider(Protocol):
    """Port odpowiedzialny za generowanie identyfikatorów nowych zadań.

    Dostaje bieżące identyfikatory kolekcji w kolejności wstawiania,
    bo domyślny schemat (następnik ostatniego) od nich zależy.
    """
    def new_id(self, existing: Sequence[TaskId]) -> TaskId:
        pass
