"""
File client module.

This module handles client-side list and upload requests. Every request uses
a fresh connection; the server closes it after one response.
"""

import asyncio
from pathlib import Path
from typing import List

from common.constants import LIST_END_MARKER
from common.protocol_definitions import create_list_request, create_put_request
from client.utils.config import ClientConfig
from client.utils.logger import logger


class FileClient:
    """Client-side file exchange functionality."""

    def __init__(self, config: ClientConfig = None):
        self.config = config or ClientConfig()

    async def _connect(self):
        connection = self.config.get_connection_info()
        host, port = connection['host'], connection['port']
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError:
            logger.log_connection(host, port, False)
            raise
        logger.log_connection(host, port, True)
        return reader, writer

    async def list_files(self) -> List[str]:
        """Request the file listing.

        Returns the response lines up to, not including, the END marker.
        Raises OSError on connection failure.
        """
        reader, writer = await self._connect()
        try:
            writer.write(create_list_request().encode('utf-8'))
            await writer.drain()

            lines = []
            while True:
                data = await reader.readline()
                if not data:
                    break
                line = data.decode('utf-8', errors='replace').rstrip('\r\n')
                if line == LIST_END_MARKER:
                    break
                lines.append(line)
            return lines
        finally:
            writer.close()
            await writer.wait_closed()

    async def put(self, file_path: str) -> str:
        """Upload a local file and return the server's response line.

        Local pre-flight failures return an error line without connecting.
        Raises OSError on connection failure.
        """
        path = Path(file_path)
        if not path.is_file():
            return f"Error: Cannot open local file '{file_path}' for reading."

        transfer = self.config.get_transfer_settings()
        size = path.stat().st_size
        if size > transfer['max_file_size']:
            return "Error: File size exceeds the 64KB limit."

        reader, writer = await self._connect()
        try:
            logger.log_file_upload(path.name, size)
            writer.write(create_put_request(path.name).encode('utf-8'))

            with open(path, 'rb') as f:
                while True:
                    data = f.read(transfer['chunk_size'])
                    if not data:
                        break
                    writer.write(data)
                    await writer.drain()

            # Half-close: end of file data
            if writer.can_write_eof():
                writer.write_eof()
            await writer.drain()

            response = await reader.readline()
            if not response:
                raise ConnectionError("Server closed the connection without a response")
            return response.decode('utf-8', errors='replace').rstrip('\r\n')
        finally:
            writer.close()
            await writer.wait_closed()
