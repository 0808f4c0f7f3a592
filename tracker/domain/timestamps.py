from datetime import date, datetime, timezone


def truncate_ms(dt: datetime) -> datetime:
    """Obcina mikrosekundy do milisekund, tak jak format zapisu."""
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def to_utc(dt: datetime) -> datetime:
    # naive = UTC, tak samo jak daty bez godziny
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return truncate_ms(dt.astimezone(timezone.utc))


def parse_instant(value) -> datetime | None:
    """Zamienia luźno typowany znacznik czasu na datetime aware w UTC.

    Przyjmuje `datetime`, `date` i stringi ISO 8601 (z offsetem lub bez,
    także z sufiksem `Z`). Cokolwiek innego albo nieparsowalny string daje None.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return to_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        return None


def format_instant(dt: datetime) -> str:
    """ISO 8601 w UTC, milisekundy i sufiks 'Z', np. 2025-10-19T20:00:00.000Z.
    Rok zawsze czterocyfrowy (0999-...), inaczej `parse_instant` by go nie przeczytał."""
    return to_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")
