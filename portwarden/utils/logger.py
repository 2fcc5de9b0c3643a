"""
Portwarden Logging System
Singleton logger shared by every module, writing to stderr and optionally to a file.
"""
import logging
import os
import sys


class Logger:
    """Singleton logger so every module shares one configured 'portwarden' logger."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialize_logger()
        return cls._instance

    def _initialize_logger(self) -> None:
        """Configure logger with console and (optional) file handlers."""
        self.logger = logging.getLogger("portwarden")
        level_name = os.getenv("PORTWARDEN_LOG_LEVEL", "WARNING").upper()
        level = logging.getLevelName(level_name)
        self.logger.setLevel(level if isinstance(level, int) else logging.WARNING)
        self.logger.propagate = False

        if self.logger.hasHandlers():
            self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # stdout belongs to the exporters (JSON/CSV), logs go to stderr
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        log_file = os.getenv("PORTWARDEN_LOG_FILE")
        if log_file:
            try:
                file_handler = logging.FileHandler(log_file, encoding='utf-8')
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)
            except OSError:
                self.logger.warning(f"Cannot open log file {log_file}, logging to console only.")

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def success(self, msg: str) -> None:
        self.logger.info(f"[SUCCESS] {msg}")
