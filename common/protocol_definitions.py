"""
Protocol definitions for the text file exchange service.

This module defines the request structure and the line formats used in
communication between client and server components.

Requests are a single newline-terminated line:
    list
    put <filename>

A put request is followed by the raw file bytes; the client half-closes its
write side to mark the end of the payload.
"""

from dataclasses import dataclass
from typing import List, Optional

from common.constants import (
    Commands, Responses, LINE_TERMINATOR, LIST_END_MARKER
)


@dataclass
class Request:
    """Parsed request line."""
    command: str
    argument: Optional[str] = None


@dataclass
class StoredFile:
    """File metadata structure."""
    name: str
    size: int


def is_plain_filename(name: str) -> bool:
    """Return True for a bare filename with no directory component."""
    if not name or name in ('.', '..'):
        return False
    return '/' not in name and '\\' not in name and '\x00' not in name


def parse_request_line(line: Optional[str]) -> Request:
    """Parse the first line of a connection into a Request.

    Never raises; anything unrecognised becomes an ``unknown`` request.
    """
    if line is None:
        return Request(Commands.UNKNOWN)

    line = line.rstrip('\r\n')
    if line == Commands.LIST:
        return Request(Commands.LIST)

    prefix = Commands.PUT + ' '
    if line.startswith(prefix):
        filename = line[len(prefix):].strip()
        if is_plain_filename(filename):
            return Request(Commands.PUT, filename)

    return Request(Commands.UNKNOWN)


def decode_request_line(data: bytes) -> str:
    """Decode raw request bytes, replacing anything that is not UTF-8."""
    return data.decode('utf-8', errors='replace')


def create_list_request() -> str:
    """Create a list request line."""
    return Commands.LIST + LINE_TERMINATOR


def create_put_request(filename: str) -> str:
    """Create a put request line."""
    return f"{Commands.PUT} {filename}{LINE_TERMINATOR}"


def create_listing_response(filenames: List[str]) -> List[str]:
    """Create the lines of a list response, always ending with END."""
    if not filenames:
        return [Responses.NO_FILES, LIST_END_MARKER]
    return [f"Listing {len(filenames)} file(s):", *filenames, LIST_END_MARKER]


def create_uploaded_response(filename: str) -> str:
    """Create an upload success response."""
    return f"Uploaded file {filename}"


def create_duplicate_response(filename: str) -> str:
    """Create an 'already exists' response."""
    return f"Error: Cannot upload file '{filename}'; already exists on server."


def is_error_response(line: str) -> bool:
    return line.startswith(Responses.ERROR_PREFIX)


def encode_lines(lines: List[str]) -> bytes:
    """Encode response lines for the wire."""
    return ''.join(line + LINE_TERMINATOR for line in lines).encode('utf-8')
