from __future__ import annotations

import logging
import sys
from pathlib import Path

FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _TrackerOnlyFilter(logging.Filter):
    """Konsola pokazuje logi tracker.*; obce loggery dopiero od WARNING."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "tracker" or record.name.startswith("tracker."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: int = logging.WARNING, log_file: str | Path | None = None) -> None:
    """
    Konfiguruje root logger:
    - handler stderr na poziomie `level`, filtrowany do logów trackera
    - opcjonalny handler pliku (UTF-8) ze wszystkim od DEBUG

    Wywołaj RAZ, przed pierwszym logiem (CLI robi to w callbacku).
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else level)

    # usuń istniejące handlery, żeby logi się nie dublowały
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_TrackerOnlyFilter())
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
