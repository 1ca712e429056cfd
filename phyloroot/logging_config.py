# --------------------------------------------------------------
#  logging_config.py
# --------------------------------------------------------------
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from phyloroot.config import Config


def configure_logging(
    level: Optional[Union[str, int]] = None,
    log_dir: Optional[Path] = None,
) -> Path:
    """Attach both *file* and *console* handlers to the root logger.

    *   **File handler** - plaintext ``phyloroot.log`` (rotates at 1 MB,
        keeps 3 backups), always at DEBUG.
    *   **Console handler** - human-readable output at ``level``.

    Returns the path of the log file.
    """
    log_dir = Path(log_dir) if log_dir is not None else Config.LOG_DIR
    console_level = level if level is not None else Config.LOG_LEVEL
    if isinstance(console_level, str):
        console_level = console_level.upper()

    # Rejects unknown level names before any file is opened
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            "%H:%M:%S",
        )
    )

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / Config.LOG_FILE.name

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Replace our own handlers on repeated calls instead of stacking them
    for old in [h for h in root_logger.handlers if getattr(h, "_phyloroot_handler", False)]:
        root_logger.removeHandler(old)
        old.close()
    for handler in (file_handler, console_handler):
        handler._phyloroot_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    logging.getLogger("phyloroot").setLevel(logging.DEBUG)
    # matplotlib is chatty at DEBUG
    logging.getLogger("matplotlib").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured. Log file: {log_file}")
    return log_file
