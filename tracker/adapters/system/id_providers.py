from tracker.ports.id_provider import IdProvider
from tracker.domain.task import TaskId
from typing import Sequence
import re
import uuid

# wiodąca liczba całkowita (ASCII), reszta napisu jest ignorowana: "12abc" -> 12
LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def _as_int(task_id) -> int | None:
    match = LEADING_INT.match(str(task_id))
    return int(match.group(1)) if match else None


class SequentialIdProvider(IdProvider):
    """
        Domyślny schemat zgodny z istniejącymi snapshotami.

        - Patrzy na OSTATNI element kolekcji (kolejność wstawiania, nie max id).
        - Jeśli jego id zaczyna się od liczby → ta liczba + 1 ("12abc" → 13),
          w przeciwnym razie len(kolekcji) + 1.
        - Pusta kolekcja → "1".

        Po usunięciu ostatniego zadania nowe id może powtórzyć id wcześniejszego
        zadania; `CounterIdProvider` tego problemu nie ma.
    """

    def new_id(self, existing: Sequence[TaskId]) -> TaskId:
        if not existing:
            return TaskId("1")
        n = _as_int(existing[-1])
        if n is None:
            return TaskId(str(len(existing) + 1))
        return TaskId(str(n + 1))


class CounterIdProvider(IdProvider):
    """Monotoniczny licznik (high-water mark) na czas życia providera.
    Nigdy nie oddaje numeru mniejszego lub równego już widzianemu."""

    def __init__(self) -> None:
        self._high = 0

    def new_id(self, existing: Sequence[TaskId]) -> TaskId:
        numbers = [n for n in (_as_int(t) for t in existing) if n is not None]
        self._high = max([self._high, *numbers]) + 1
        return TaskId(str(self._high))


class UuidIdProvider(IdProvider):

    def new_id(self, existing: Sequence[TaskId]) -> TaskId:
        return TaskId(str(uuid.uuid4()))
