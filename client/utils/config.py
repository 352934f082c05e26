"""
Client configuration module.

This module handles client-side configuration settings.
"""

from common.constants import DEFAULT_HOST, DEFAULT_PORT, CHUNK_SIZE, MAX_FILE_SIZE


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port

        # File transfer settings
        self.chunk_size = CHUNK_SIZE
        self.max_file_size = MAX_FILE_SIZE

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_transfer_settings(self):
        """Get file transfer settings."""
        return {
            'chunk_size': self.chunk_size,
            'max_file_size': self.max_file_size
        }
