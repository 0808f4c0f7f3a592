from tracker.ports.snapshot_repository import Record, TaskSnapshotRepository
from typing import Iterable
import copy

### COMMENTS
# ==========================================================
# Adapter pamięciowy dla snapshotu zadań (adapters/memory/task_repo.py).
# ==========================================================
# - Służy do testów i trybu `--memory` w CLI (brak trwałości między uruchomieniami).
# - Trzyma głęboką kopię rekordów: to, co oddał `load`, nie jest tym, co leży w środku.
# - `saves` liczy zapisy, testy sprawdzają nim, że serwis utrwala każdą zmianę.


class InMemorySnapshotRepository(TaskSnapshotRepository):
    """
        Inicjalizuje repozytorium z opcjonalną listą startowych rekordów.
        :param initial: Iterable z rekordami (dict) do wstępnego załadowania.
    """
    def __init__(self, initial: Iterable[Record] | None = None) -> None:
        self._records: list[Record] = [copy.deepcopy(r) for r in (initial or [])]
        self.saves = 0

    def load(self) -> list[Record]:
        return copy.deepcopy(self._records)

    def save(self, records: list[Record]) -> None:
        self._records = copy.deepcopy(list(records))
        self.saves += 1
