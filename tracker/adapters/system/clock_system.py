from tracker.ports.clock import Clock
from tracker.domain.timestamps import truncate_ms
from datetime import datetime, timezone

class SystemClock(Clock):
    """Zegar systemowy; czas UTC z dokładnością do milisekund (jak w snapshotach),
    więc zadanie w pamięci i po ponownym wczytaniu ma ten sam `createdAt`."""

    def now(self) -> datetime:
        return truncate_ms(datetime.now(timezone.utc))
