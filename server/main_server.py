#!/usr/bin/env python3
"""
Text File Exchange Server - Main Entry Point

Accepts TCP connections and hands each one to a fixed pool of worker tasks
through a bounded queue. Workers run the list/put protocol in
``server.files.file_server``.
"""

import argparse
import asyncio
import logging
import socket
from typing import List, Optional

from common.constants import LISTEN_BACKLOG, MAX_REQUEST_LINE
from server.files.file_server import FileServer
from server.files.file_store import FileStore
from server.files.store_coordinator import StoreCoordinator
from server.utils.config import ServerConfig
from server.utils.logger import logger
from server.utils.request_log import RequestLog


class FileExchangeServer:
    """Connection acceptor and worker pool."""

    def __init__(self, config: ServerConfig = None):
        self.config = config or ServerConfig()

        # Shared state, only mutated through the coordinator
        store_settings = self.config.get_store_settings()
        self.store = FileStore(store_settings['store_dir'], store_settings['allowed_extension'])
        self.request_log = RequestLog(store_settings['request_log_path'])
        self.coordinator = StoreCoordinator(self.store, self.request_log)
        self.file_server = FileServer(self.coordinator, **self.config.get_transfer_settings())

        self.address: Optional[tuple] = None
        self._listener: Optional[socket.socket] = None
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._acceptor_task: Optional[asyncio.Task] = None

    @property
    def port(self) -> int:
        return self.address[1] if self.address else self.config.port

    def prepare_storage(self):
        """Recreate the request log and make sure the store directory exists.

        Raises OSError on failure.
        """
        self.request_log.reset()
        self.store.ensure()
        removed = self.store.purge_staging()
        if removed:
            logger.warning(f"Removed {removed} unfinished upload(s) from {self.store.root}")

    def bind(self) -> socket.socket:
        """Create the listening socket. Raises OSError if the port is unavailable."""
        connection = self.config.get_connection_info()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((connection['host'], connection['port']))
            sock.listen(LISTEN_BACKLOG)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    async def start(self):
        """Prepare storage, bind, and start the acceptor and the workers."""
        self.prepare_storage()
        self._listener = self.bind()
        self.address = self._listener.getsockname()

        pool = self.config.get_pool_settings()
        self._queue = asyncio.Queue(maxsize=pool['queue_size'])
        self._workers = [
            asyncio.create_task(self._worker(i)) for i in range(pool['pool_size'])
        ]
        self._acceptor_task = asyncio.create_task(self._accept_loop())

        logger.info(f"Server is listening on {self.address[0]}:{self.address[1]}")
        logger.info(f"  Store: {self.store.root.resolve()}")
        logger.info(f"  Request log: {self.request_log.path.resolve()}")
        logger.info(f"  Workers: {pool['pool_size']}, queue: {pool['queue_size']}")

    async def serve_forever(self):
        """Run until cancelled, then shut down cleanly."""
        await self.start()
        try:
            await self._acceptor_task
        finally:
            await self.stop()

    async def stop(self):
        """Stop accepting and let queued and in-flight connections finish."""
        if self._acceptor_task:
            self._acceptor_task.cancel()
            await asyncio.gather(self._acceptor_task, return_exceptions=True)
            self._acceptor_task = None

        if self._listener:
            self._listener.close()
            self._listener = None

        if self._workers:
            # One sentinel per worker, queued behind any waiting connections
            for _ in self._workers:
                await self._queue.put(None)
            await asyncio.gather(*self._workers, return_exceptions=True)
            self._workers = []
            logger.info("Server stopped")

    async def _accept_loop(self):
        """Accept connections and queue them; never runs protocol logic.

        When the queue is full this loop waits on it before accepting again,
        leaving new clients in the listen backlog.
        """
        loop = asyncio.get_running_loop()
        while True:
            try:
                conn, addr = await loop.sock_accept(self._listener)
            except OSError as e:
                logger.log_error("accepting connection", e)
                await asyncio.sleep(0.1)
                continue

            logger.log_connection(addr)
            try:
                await self._queue.put(conn)
            except asyncio.CancelledError:
                conn.close()
                raise

    async def _worker(self, worker_id: int):
        """Handle queued connections one at a time until a sentinel arrives."""
        while True:
            conn = await self._queue.get()
            try:
                if conn is None:
                    return
                await self._serve(conn)
            except Exception as e:
                logger.log_error(f"worker {worker_id}", e)
            finally:
                self._queue.task_done()

    async def _serve(self, conn: socket.socket):
        try:
            reader, writer = await asyncio.open_connection(sock=conn, limit=MAX_REQUEST_LINE)
        except OSError:
            conn.close()
            raise
        await self.file_server.handle_connection(reader, writer)


def build_parser() -> argparse.ArgumentParser:
    defaults = ServerConfig()
    parser = argparse.ArgumentParser(description='Text File Exchange Server')
    parser.add_argument('--host', type=str, default=defaults.host,
                        help=f'Host to bind to (default: {defaults.host})')
    parser.add_argument('--port', type=int, default=defaults.port,
                        help=f'TCP port (default: {defaults.port})')
    parser.add_argument('--store-dir', type=str, default=defaults.store_dir,
                        help=f'Directory for uploaded files (default: {defaults.store_dir})')
    parser.add_argument('--log-file', type=str, default=defaults.request_log_path,
                        help=f'Request log file, recreated at startup (default: {defaults.request_log_path})')
    parser.add_argument('--pool-size', type=int, default=defaults.pool_size,
                        help=f'Number of worker tasks (default: {defaults.pool_size})')
    parser.add_argument('--queue-size', type=int, default=defaults.queue_size,
                        help=f'Connections waiting for a worker (default: {defaults.queue_size})')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logger.set_level(logging.DEBUG)

    try:
        config = ServerConfig(
            host=args.host,
            port=args.port,
            store_dir=args.store_dir,
            request_log_path=args.log_file,
            pool_size=args.pool_size,
            queue_size=args.queue_size
        )
    except ValueError as e:
        parser.error(str(e))

    server = FileExchangeServer(config)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except OSError as e:
        # Bind or storage failure during startup
        logger.error(f"Server failed to start on port {config.port}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
