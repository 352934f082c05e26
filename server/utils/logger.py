"""
Server logging module.

This module handles server-side operational logging. The request log that
records every list/put request lives in ``server.utils.request_log``.
"""

import logging


class ServerLogger:
    """Server logging class."""

    def __init__(self, log_level: int = logging.INFO):
        # Set up main logger
        self.logger = logging.getLogger('file_exchange_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        self.console_handler = logging.StreamHandler()
        self.console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(self.console_handler)

    def set_level(self, log_level: int):
        """Change the level of the logger and its console handler."""
        self.logger.setLevel(log_level)
        self.console_handler.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr: tuple):
        """Log client connection."""
        self.info(f"New client connected from {addr}")

    def log_request(self, addr: tuple, line: str):
        """Log the raw request line received from a client."""
        self.info(f"Message from client {addr}: {line!r}")

    def log_listing(self, addr: tuple, count: int):
        """Log a completed listing."""
        self.info(f"Listed {count} file(s) for {addr}")

    def log_upload(self, filename: str, size: int, addr: tuple):
        """Log file upload."""
        self.info(f"FILE UPLOAD SUCCESS: '{filename}' ({size} bytes) from {addr}")

    def log_upload_rejected(self, filename: str, reason: str, addr: tuple):
        """Log a rejected upload."""
        self.warning(f"FILE UPLOAD REJECTED: '{filename}' from {addr}: {reason}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
