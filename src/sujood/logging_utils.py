from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class LoggerFactory:
    @staticmethod
    def create(
        name: str,
        log_file: Optional[Union[str, Path]] = None,
        level: int = logging.INFO,
    ) -> logging.Logger:
        logger = logging.getLogger(name)
        if logger.handlers:
            return logger

        logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)

        # Console output goes to stderr so command output on stdout stays clean.
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.WARNING)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_file is not None:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path, maxBytes=1_000_000, backupCount=3
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    @staticmethod
    def configure_root(log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
        """Attach handlers to the root logger so per-class loggers share them."""
        return LoggerFactory.create("", log_file=log_file)
