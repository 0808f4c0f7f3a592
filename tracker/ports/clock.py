from typing import Protocol
from datetime import datetime

class Clock(Protocol):
    """Źródło bieżącej chwili dla serwisu zadań.

    - `now()` zwraca datetime aware w UTC.
    - Serwis bierze z niego `createdAt` nowych zadań, brakujące `createdAt`
      przy wczytywaniu snapshotu i domyślny moment zakończenia w `ontime`.
    """
    def now(self) -> datetime:
        ...
