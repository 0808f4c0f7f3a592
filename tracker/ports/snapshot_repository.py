from typing import Any, Protocol


### COMMENTS
# ==========================================================
# Kontrakt trwałości snapshotu (ports/snapshot_repository.py).
# ==========================================================
# Serwis jest jedynym właścicielem kolekcji w pamięci i jedynym, kto zapisuje
# snapshot. Repozytorium widzi tylko płaskie rekordy (dict, camelCase):
# - `load` oddaje całą uporządkowaną listę,
# - `save` nadpisuje całość (brak tombstone'ów, brak zapisów częściowych).
# Adaptery mapują błędy technologiczne na `TaskPersistenceError`.
# Repozytorium nie zawiera logiki biznesowej i nie waliduje rekordów.

Record = dict[str, Any]


class TaskSnapshotRepository(Protocol):
    """Interfejs zapisu i odczytu całego snapshotu zadań.

    Adaptery (implementacje) muszą:
    - zachować kolejność rekordów między `save` a `load`,
    - zapisywać atomowo (po błędzie stary snapshot zostaje nienaruszony),
    - mapować błędy technologiczne na `TaskPersistenceError`.
    """

    def load(self) -> list[Record]:
        """Zwraca wszystkie rekordy w kolejności zapisu.

        Zwraca:
            list[Record]: Pusta lista, gdy snapshot jeszcze nie istnieje.

        Wyjątki domenowe:
            TaskPersistenceError: Gdy źródła nie da się odczytać lub sparsować.
        """

    def save(self, records: list[Record]) -> None:
        """Nadpisuje snapshot podaną listą rekordów.

        Wyjątki domenowe:
            TaskPersistenceError: Gdy zapis się nie powiódł.
        """
