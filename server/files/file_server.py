"""
File server module.

This module handles one client connection: it reads the request line,
serves ``list`` and ``put`` requests, writes the response and closes the
connection.
"""

import asyncio
from typing import Optional

from common.constants import Commands, Responses, CHUNK_SIZE, MAX_FILE_SIZE, DRAIN_LIMIT
from common.protocol_definitions import (
    parse_request_line, decode_request_line, encode_lines,
    create_listing_response, create_uploaded_response, create_duplicate_response
)
from server.files.store_coordinator import StoreCoordinator
from server.utils.logger import logger


class FileServer:
    """Server-side list and upload handling."""

    def __init__(self, coordinator: StoreCoordinator, chunk_size: int = CHUNK_SIZE,
                 max_file_size: int = MAX_FILE_SIZE, drain_limit: int = DRAIN_LIMIT):
        self.coordinator = coordinator
        self.store = coordinator.store
        self.chunk_size = chunk_size
        self.max_file_size = max_file_size
        self.drain_limit = drain_limit

    async def handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Serve a single request and close the connection."""
        addr = writer.get_extra_info('peername')
        client = addr[0] if addr else 'unknown'

        try:
            line = await self._read_request_line(reader)
            logger.log_request(addr, line)
            request = parse_request_line(line)

            if request.command == Commands.LIST:
                await self.handle_list(client, addr, writer)
            elif request.command == Commands.PUT:
                await self.handle_put(request.argument, client, addr, reader, writer)
            else:
                await self._send_lines(writer, [Responses.UNSUPPORTED_COMMAND])
        except OSError as e:
            logger.log_error(f"connection from {addr}", e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing connection from {addr}: {e}")

    async def handle_list(self, client: str, addr: tuple, writer: asyncio.StreamWriter):
        """Record the request, then send the current listing."""
        await self.coordinator.record(client, Commands.LIST)

        try:
            names = self.store.list_files()
        except OSError as e:
            # Unreadable store is reported to the client as an empty listing
            logger.log_error("listing files", e)
            names = []

        # The whole response is built before anything is written.
        await self._send_lines(writer, create_listing_response(names))
        logger.log_listing(addr, len(names))

    async def handle_put(self, filename: str, client: str, addr: tuple,
                         reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Stream an upload into the store, enforcing the size cap."""
        await self.coordinator.record(client, Commands.PUT)

        if not self.store.is_allowed_name(filename):
            logger.log_upload_rejected(filename, "not a text file", addr)
            await self._send_lines(writer, [Responses.ONLY_TEXT_FILES])
            await self._discard_input(reader)
            return

        try:
            staged = await self.coordinator.stage(filename)
        except OSError as e:
            logger.log_error(f"staging upload of '{filename}'", e)
            await self._send_lines(writer, [Responses.CANNOT_SAVE])
            return

        if staged is None:
            logger.log_upload_rejected(filename, "already exists", addr)
            await self._send_lines(writer, [create_duplicate_response(filename)])
            await self._discard_input(reader)
            return

        bytes_received = 0
        too_large = False
        stored = None
        try:
            with open(staged, 'wb') as f:
                while True:
                    data = await reader.read(self.chunk_size)
                    if not data:
                        break

                    bytes_received += len(data)
                    if bytes_received > self.max_file_size:
                        too_large = True
                        break

                    f.write(data)

            if not too_large:
                stored = await self.coordinator.commit(staged, filename)
        except OSError as e:
            logger.log_error(f"upload of '{filename}' from {addr}", e)
            await self.coordinator.discard(staged)
            await self._send_lines(writer, [Responses.CANNOT_SAVE])
            await self._discard_input(reader)
            return

        if too_large:
            await self.coordinator.discard(staged)
            logger.log_upload_rejected(filename, f"exceeds {self.max_file_size} bytes", addr)
            await self._send_lines(writer, [Responses.SIZE_EXCEEDED])
            await self._discard_input(reader)
            return

        if stored is None:
            # Another upload of the same name committed while this one streamed.
            logger.log_upload_rejected(filename, "already exists", addr)
            await self._send_lines(writer, [create_duplicate_response(filename)])
            return

        logger.log_upload(stored.name, stored.size, addr)
        await self._send_lines(writer, [create_uploaded_response(stored.name)])

    async def _read_request_line(self, reader: asyncio.StreamReader) -> Optional[str]:
        try:
            data = await reader.readline()
        except ValueError:
            # Request line longer than the stream limit
            return None
        return decode_request_line(data)

    async def _discard_input(self, reader: asyncio.StreamReader):
        """Read and drop unread upload bytes, up to drain_limit.

        Input still unread at close turns the close into a reset on the
        client side.
        """
        remaining = self.drain_limit
        try:
            while remaining > 0:
                data = await reader.read(min(self.chunk_size, remaining))
                if not data:
                    break
                remaining -= len(data)
        except OSError as e:
            logger.debug(f"Stopped discarding input: {e}")

    async def _send_lines(self, writer: asyncio.StreamWriter, lines):
        writer.write(encode_lines(lines))
        await writer.drain()
