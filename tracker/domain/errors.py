from dataclasses import dataclass
from enum import Enum


### COMMENTS
# ============================================
# Konwencja użycia błędów domenowych w projekcie
# ============================================
# - Walidator (domain/validation.py):
#     * zbiera wszystkie naruszenia reguł i rzuca jeden TaskValidationError
#
# - Normalizer (domain/normalize.py):
#     * rzuca TaskValidationError tylko dla rekordów bez id/title,
#       resztę po cichu poprawia na wartości domyślne
#
# - Repozytoria (adaptery):
#     * mapują błędy techniczne (OSError, JSONDecodeError, SQLAlchemyError)
#       na TaskPersistenceError
#
# - Serwis:
#     * brak rekordu przy update/delete/get_task → TaskNotFoundError
#     * jawne id przy create, które już istnieje → TaskAlreadyExistsError
#
# - UI (CLI):
#     * łapie DomainError (lub konkretne klasy) i wyświetla przyjazny komunikat


class ViolationCode(str, Enum):
    NOT_A_RECORD = "not_a_record"
    ID_REQUIRED = "id_required"
    ID_EMPTY = "id_empty"
    TITLE_REQUIRED = "title_required"
    TITLE_EMPTY = "title_empty"
    DESCRIPTION_EMPTY = "description_empty"
    INVALID_STATUS = "invalid_status"
    INVALID_PRIORITY = "invalid_priority"
    INVALID_DEADLINE = "invalid_deadline"
    INVALID_TYPE = "invalid_type"
    PARENT_REQUIRED = "parent_required"
    PARENT_EMPTY = "parent_empty"
    ASSIGNEE_EMPTY = "assignee_empty"
    INVALID_STORY_POINTS = "invalid_story_points"
    EPIC_EMPTY = "epic_empty"
    FEATURES_NOT_A_LIST = "features_not_a_list"
    FEATURE_EMPTY = "feature_empty"
    IMMUTABLE_FIELD = "immutable_field"
    INVALID_DATE = "invalid_date"
    WRONG_VARIANT = "wrong_variant"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Violation:
    """Pojedyncze naruszenie reguły walidacji: kod, pole i czytelny komunikat."""
    code: ViolationCode
    field: str
    message: str


class DomainError(Exception):
    """Bazowa klasa dla błędów domenowych.
    Umożliwia odróżnienie błędów domeny (logika aplikacji) od błędów technicznych.
    Nie powinna być rzucana bezpośrednio, używaj klas pochodnych.
    """


class TaskValidationError(DomainError):
    """Rzucany, gdy dane wejściowe nie spełniają reguł dla zadania.

    Przykłady:
    - tytuł jest pusty,
    - status spoza rozpoznawanego zbioru,
    - subtask bez `parentId`,
    - `storyPoints` nie jest nieujemną liczbą całkowitą.

    Niesie pełną listę naruszeń (`violations`); `field`, `message` i `code`
    opisują pierwsze z nich, co ułatwia prezentację w UI.
    """
    def __init__(self, field: str, message: str, code: ViolationCode | None = None,
                 violations: list[Violation] | None = None):
        self.field = field
        self.message = message
        self.code = code
        self.violations = list(violations) if violations else [
            Violation(code or ViolationCode.NOT_A_RECORD, field, message)
        ]
        super().__init__(self.__str__())

    @classmethod
    def from_violations(cls, violations: list[Violation]) -> "TaskValidationError":
        first = violations[0]
        return cls(first.field, first.message, first.code, violations)

    def __str__(self):
        if len(self.violations) > 1:
            extra = len(self.violations) - 1
            return f"Invalid field '{self.field}': {self.message} (+{extra} more)"
        return f"Invalid field '{self.field}': {self.message}"


class TaskVariantError(TaskValidationError):
    """Rzucany, gdy operacja wariantowa trafia na zły rodzaj zadania,
    np. `add_feature` na zadaniu, które nie jest epikiem."""
    def __init__(self, field: str, message: str):
        super().__init__(field, message, ViolationCode.WRONG_VARIANT)


class TaskNotFoundError(DomainError):
    """Rzucany, gdy żądane zadanie nie istnieje w kolekcji.
    Występuje przy `update()`, `delete()`, `get_task()` i operacjach na epikach.
    """
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Task with ID {self.task_id} does not exist."


class TaskAlreadyExistsError(DomainError):
    """Rzucany, gdy jawnie podane `id` przy tworzeniu koliduje z istniejącym zadaniem."""
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Task with ID {self.task_id} already exists."


class TaskPersistenceError(DomainError):
    """Rzucany przez adaptery, gdy odczyt lub zapis snapshotu się nie powiódł
    (brak dostępu do pliku, uszkodzony JSON, błąd bazy danych).
    Serwis nie ponawia operacji i nie cofa zmian w pamięci.
    """
