import logging
from pathlib import Path
from typing import Optional

LOG_FILENAME = "ccmp.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"

_file_handler: Optional[logging.Handler] = None

def setup_logging(log_dir: Path, debug: bool = False) -> logging.Logger:
    """Routes logging to ``<log_dir>/ccmp.log``.

    No console handler is installed so the live view is not interleaved with log lines.
    Calling it again replaces the previous file handler.
    """
    global _file_handler
    log_dir.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")
    _file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_file_handler)

    return logging.getLogger("ccmp")
