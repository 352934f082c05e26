"""
Shared constants for the text file exchange service.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 9487

# Buffer Sizes
CHUNK_SIZE = 4096
MAX_FILE_SIZE = 64 * 1024  # 65536 bytes
DRAIN_LIMIT = 64 * 1024  # unread input discarded after a rejected upload
MAX_REQUEST_LINE = 64 * 1024

# Worker Pool
LISTEN_BACKLOG = 50
WORKER_POOL_SIZE = 20
CONNECTION_QUEUE_SIZE = 20

# File Store
ALLOWED_EXTENSION = '.txt'
STORE_DIR = 'serverFiles'
STAGING_SUFFIX = '.part'
STAGING_PREFIX = '.upload.'

# Logging
REQUEST_LOG_FILE = 'log.txt'
LOG_TIMESTAMP_FORMAT = '%Y-%m-%d|%H:%M:%S'
LOG_FIELD_SEPARATOR = '|'

# Protocol
LINE_TERMINATOR = '\n'
LIST_END_MARKER = 'END'


# Request commands
class Commands:
    LIST = 'list'
    PUT = 'put'
    UNKNOWN = 'unknown'


# Server response lines
class Responses:
    NO_FILES = 'No files found.'
    UNSUPPORTED_COMMAND = 'Error: Unsupported command'
    ONLY_TEXT_FILES = 'Error: Only text files are allowed.'
    SIZE_EXCEEDED = 'Error: File size exceeds the 64Kb limit.'
    CANNOT_SAVE = 'Error: Cannot save file.'
    ERROR_PREFIX = 'Error:'
