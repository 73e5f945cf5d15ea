import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import get_log_path

_log_lock = threading.Lock()


def reset_log(path: Optional[Path] = None) -> None:
    target = path or get_log_path()
    with _log_lock:
        target.write_text("", encoding="utf-8")


def log_event(status: str, source: str, detail: str | None = None, *, path: Optional[Path] = None) -> None:
    """Append one ``timestamp<TAB>STATUS<TAB>source[<TAB>detail]`` line."""
    target = path or get_log_path()
    timestamp = datetime.now().isoformat(timespec="seconds")
    message = " ".join(detail.split()) if detail else ""
    line = f"{timestamp}\t{status.upper()}\t{source}"
    if message:
        line = f"{line}\t{message}"
    with _log_lock:
        with target.open("a", encoding="utf-8") as log:
            log.write(line + "\n")
