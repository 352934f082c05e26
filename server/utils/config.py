"""
Server configuration module.

This module handles server-side configuration settings.
"""

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, STORE_DIR, REQUEST_LOG_FILE, ALLOWED_EXTENSION,
    CHUNK_SIZE, MAX_FILE_SIZE, DRAIN_LIMIT, WORKER_POOL_SIZE, CONNECTION_QUEUE_SIZE
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 store_dir: str = STORE_DIR, request_log_path: str = REQUEST_LOG_FILE,
                 pool_size: int = WORKER_POOL_SIZE, queue_size: int = CONNECTION_QUEUE_SIZE):
        if pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got {pool_size}")
        if queue_size < 1:
            raise ValueError(f"queue_size must be at least 1, got {queue_size}")

        self.host = host
        self.port = port

        # Storage settings
        self.store_dir = store_dir
        self.request_log_path = request_log_path
        self.allowed_extension = ALLOWED_EXTENSION

        # File transfer settings
        self.chunk_size = CHUNK_SIZE
        self.max_file_size = MAX_FILE_SIZE
        self.drain_limit = DRAIN_LIMIT

        # Worker pool: at most pool_size connections are handled at once and
        # at most queue_size accepted connections wait for a worker. When the
        # queue is full the acceptor stops accepting until a slot frees up.
        self.pool_size = pool_size
        self.queue_size = queue_size

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_store_settings(self):
        """Get file store settings."""
        return {
            'store_dir': self.store_dir,
            'request_log_path': self.request_log_path,
            'allowed_extension': self.allowed_extension
        }

    def get_transfer_settings(self):
        """Get file transfer settings."""
        return {
            'chunk_size': self.chunk_size,
            'max_file_size': self.max_file_size,
            'drain_limit': self.drain_limit
        }

    def get_pool_settings(self):
        """Get worker pool settings."""
        return {
            'pool_size': self.pool_size,
            'queue_size': self.queue_size
        }
