"""Centralized logging configuration module"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Whether already initialized
_initialized = False

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 10 * 1024 * 1024
KEEP_BACKUPS = 3


def setup_logging(log_dir: Optional[Path] = None, level: str = "INFO"):
    """Configure console + rotating file logging for the application"""
    global _initialized

    if _initialized:
        return

    logs_dir = Path(log_dir or "logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / "server.log"

    # Write session separator
    with open(log_file, 'a', encoding='utf-8') as f:
        f.write("\n" + "=" * 100 + "\n")
        f.write(f"Server started at: {datetime.now().strftime(LOG_DATEFMT)}\n")
        f.write("=" * 100 + "\n\n")

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_BYTES,
        backupCount=KEEP_BACKUPS,
        encoding='utf-8',
    )
    file_handler.setFormatter(formatter)

    level_value = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=level_value,
        handlers=[console_handler, file_handler],
        force=True
    )

    logging.getLogger('kb_assist').setLevel(level_value)

    # Reduce log level for third-party libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    _initialized = True

    logging.getLogger(__name__).info(
        "Logging initialized: %s (max %sMB per file, keep %s backups)",
        log_file.absolute(),
        MAX_LOG_BYTES // (1024 * 1024),
        KEEP_BACKUPS,
    )
