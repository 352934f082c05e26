#!/usr/bin/env python3
"""
End-to-end tests for the file exchange server.

Each test starts a real server on an ephemeral localhost port with a
temporary store and request log, and talks to it over TCP.
"""

import asyncio
import logging
import socket
import tempfile
import unittest
from unittest.mock import patch

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from server.main_server import FileExchangeServer, main
from server.utils.config import ServerConfig
from server.utils.logger import logger


DUPLICATE = "Error: Cannot upload file '{}'; already exists on server."


class FailingWrite:
    """Stand-in for a staged upload file whose second write fails."""

    def __init__(self, path, mode):
        self.file = open(path, mode)
        self.writes = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.file.close()

    def write(self, data):
        self.writes += 1
        if self.writes > 1:
            raise OSError(28, "No space left on device")
        return self.file.write(data)


class ServerTestCase(unittest.IsolatedAsyncioTestCase):
    """Base class running a server for each test."""

    pool_size = 8
    queue_size = 8

    async def asyncSetUp(self):
        logger.set_level(logging.CRITICAL)
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.store_dir = root / 'serverFiles'
        self.log_path = root / 'log.txt'

        config = ServerConfig(
            host='127.0.0.1',
            port=0,
            store_dir=str(self.store_dir),
            request_log_path=str(self.log_path),
            pool_size=self.pool_size,
            queue_size=self.queue_size
        )
        self.server = FileExchangeServer(config)
        await self.server.start()

    async def asyncTearDown(self):
        await self.server.stop()
        self.tmp.cleanup()
        logger.set_level(logging.INFO)

    async def open(self):
        return await asyncio.open_connection('127.0.0.1', self.server.port)

    async def request(self, line: bytes, payload: bytes = b''):
        """Send a request plus payload, half-close and return the response lines."""
        reader, writer = await self.open()
        writer.write(line + payload)
        await writer.drain()
        writer.write_eof()
        data = await reader.read()
        writer.close()
        await writer.wait_closed()
        return data.decode('utf-8').splitlines()

    def stored_names(self):
        return sorted(p.name for p in self.store_dir.iterdir())

    def log_lines(self):
        return [(r.client, r.command) for r in self.server.request_log.records()]

    async def wait_for_staging(self, count: int = 1):
        for _ in range(500):
            if len(list(self.store_dir.glob('.*.part'))) >= count:
                return
            await asyncio.sleep(0.01)
        self.fail("upload was never staged")


class TestListing(ServerTestCase):
    """Test cases for the list command."""

    async def test_empty_store(self):
        """An empty listing still ends with END."""
        self.assertEqual(await self.request(b'list\n'), ['No files found.', 'END'])

    async def test_lists_only_text_files(self):
        (self.store_dir / 'b.txt').write_text('b')
        (self.store_dir / 'a.txt').write_text('a')
        (self.store_dir / 'c.md').write_text('c')

        lines = await self.request(b'list\n')

        self.assertEqual(lines, ['Listing 2 file(s):', 'a.txt', 'b.txt', 'END'])

    async def test_unreadable_store_lists_as_empty(self):
        with patch.object(self.server.store, 'list_files', side_effect=OSError('gone')):
            lines = await self.request(b'list\n')

        self.assertEqual(lines, ['No files found.', 'END'])
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'list')])

    async def test_list_is_logged(self):
        await self.request(b'list\n')
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'list')])

    async def test_concurrent_lists_log_one_record_each(self):
        results = await asyncio.gather(*[self.request(b'list\n') for _ in range(20)])

        self.assertTrue(all(r == ['No files found.', 'END'] for r in results))
        raw = self.log_path.read_text().splitlines()
        self.assertEqual(len(raw), 20)
        self.assertTrue(all(line.endswith('|127.0.0.1|list') for line in raw))

    async def test_in_flight_upload_is_not_listed(self):
        reader, writer = await self.open()
        writer.write(b'put pending.txt\n' + b'x' * 10)
        await writer.drain()
        await self.wait_for_staging()

        self.assertEqual(await self.request(b'list\n'), ['No files found.', 'END'])

        writer.write_eof()
        response = await reader.read()
        writer.close()
        await writer.wait_closed()

        self.assertEqual(response, b'Uploaded file pending.txt\n')
        self.assertEqual(await self.request(b'list\n'),
                         ['Listing 1 file(s):', 'pending.txt', 'END'])


class TestUpload(ServerTestCase):
    """Test cases for the put command."""

    async def test_upload_then_list(self):
        payload = bytes(range(100))

        self.assertEqual(await self.request(b'put a.txt\n', payload), ['Uploaded file a.txt'])

        self.assertEqual((self.store_dir / 'a.txt').read_bytes(), payload)
        self.assertEqual(await self.request(b'list\n'), ['Listing 1 file(s):', 'a.txt', 'END'])
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put'), ('127.0.0.1', 'list')])

    async def test_upload_at_the_limit(self):
        payload = b'y' * 65536

        self.assertEqual(await self.request(b'put full.txt\n', payload), ['Uploaded file full.txt'])
        self.assertEqual((self.store_dir / 'full.txt').stat().st_size, 65536)

    async def test_empty_upload(self):
        self.assertEqual(await self.request(b'put empty.txt\n'), ['Uploaded file empty.txt'])
        self.assertEqual((self.store_dir / 'empty.txt').read_bytes(), b'')

    async def test_upload_over_the_limit(self):
        """A 70000-byte upload is refused and leaves nothing behind."""
        response = await self.request(b'put big.txt\n', b'z' * 70000)

        self.assertEqual(response, ['Error: File size exceeds the 64Kb limit.'])
        self.assertEqual(self.stored_names(), [])
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')])

    async def test_one_byte_over_the_limit(self):
        response = await self.request(b'put big.txt\n', b'z' * 65537)

        self.assertEqual(response, ['Error: File size exceeds the 64Kb limit.'])
        self.assertEqual(self.stored_names(), [])

    async def test_wrong_extension(self):
        response = await self.request(b'put image.png\n', b'\x89PNG')

        self.assertEqual(response, ['Error: Only text files are allowed.'])
        self.assertEqual(self.stored_names(), [])
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')])

    async def test_duplicate_upload_keeps_first_version(self):
        await self.request(b'put a.txt\n', b'first version')

        response = await self.request(b'put a.txt\n', b'second version')

        self.assertEqual(response, [DUPLICATE.format('a.txt')])
        self.assertEqual((self.store_dir / 'a.txt').read_bytes(), b'first version')
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')] * 2)

    async def test_concurrent_uploads_of_same_name(self):
        """Exactly one of two simultaneous uploads of one name succeeds."""
        connections = [await self.open() for _ in range(2)]
        for i, (_, writer) in enumerate(connections):
            writer.write(b'put race.txt\n' + str(i).encode() * 50)
            await writer.drain()

        async def finish(reader, writer):
            writer.write_eof()
            data = await reader.read()
            writer.close()
            await writer.wait_closed()
            return data.decode().strip()

        responses = await asyncio.gather(*[finish(r, w) for r, w in connections])

        self.assertEqual(sorted(responses), [DUPLICATE.format('race.txt'), 'Uploaded file race.txt'])
        self.assertEqual(self.stored_names(), ['race.txt'])
        self.assertIn((self.store_dir / 'race.txt').read_bytes(), (b'0' * 50, b'1' * 50))
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')] * 2)

    async def test_storage_failure_is_cleaned_up(self):
        with patch.object(self.server.store, 'commit', side_effect=OSError('disk full')):
            response = await self.request(b'put a.txt\n', b'data')

        self.assertEqual(response, ['Error: Cannot save file.'])
        self.assertEqual(self.stored_names(), [])
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')])

    async def test_failed_disk_write_is_cleaned_up(self):
        """A write failure partway through the copy discards the staged file."""
        with patch('server.files.file_server.open', FailingWrite, create=True):
            response = await self.request(b'put a.txt\n', b'w' * 10000)

        self.assertEqual(response, ['Error: Cannot save file.'])
        self.assertEqual(self.stored_names(), [])
        self.assertFalse(self.server.coordinator.lock.locked())
        self.assertEqual(self.log_lines(), [('127.0.0.1', 'put')])

    async def test_longest_filename(self):
        name = 'n' * 251 + '.txt'

        response = await self.request(f'put {name}\n'.encode(), b'hello')

        self.assertEqual(response, [f'Uploaded file {name}'])
        self.assertEqual(self.stored_names(), [name])
        self.assertEqual((self.store_dir / name).read_bytes(), b'hello')


class TestProtocolErrors(ServerTestCase):
    """Test cases for unsupported requests."""

    async def test_unknown_command(self):
        self.assertEqual(await self.request(b'delete x\n'), ['Error: Unsupported command'])
        self.assertEqual(self.log_lines(), [])

    async def test_path_in_filename(self):
        response = await self.request(b'put ../escape.txt\n', b'data')

        self.assertEqual(response, ['Error: Unsupported command'])
        self.assertFalse((self.store_dir.parent / 'escape.txt').exists())

    async def test_connection_closed_without_request(self):
        self.assertEqual(await self.request(b''), ['Error: Unsupported command'])


class TestWorkerPool(ServerTestCase):
    """Test cases for the bounded worker pool."""

    pool_size = 1
    queue_size = 1

    async def test_saturated_pool_queues_connections(self):
        """A second client waits while the only worker is busy, then is served."""
        busy_reader, busy_writer = await self.open()
        await asyncio.sleep(0.1)

        waiting = asyncio.create_task(self.request(b'list\n'))
        await asyncio.sleep(0.2)
        self.assertFalse(waiting.done())

        busy_writer.write(b'list\n')
        await busy_writer.drain()
        busy_lines = (await busy_reader.read()).decode().splitlines()
        busy_writer.close()
        await busy_writer.wait_closed()

        self.assertEqual(busy_lines, ['No files found.', 'END'])
        self.assertEqual(await asyncio.wait_for(waiting, 5), ['No files found.', 'END'])


class TestStartup(unittest.TestCase):
    """Test cases for server startup."""

    def setUp(self):
        logger.set_level(logging.CRITICAL)
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()
        logger.set_level(logging.INFO)

    def test_stale_staging_is_purged_and_log_reset(self):
        store_dir = self.root / 'serverFiles'
        store_dir.mkdir()
        (store_dir / '.upload.abc.part').write_bytes(b'partial')
        (store_dir / 'kept.txt').write_text('kept')
        log_path = self.root / 'log.txt'
        log_path.write_text('2020-01-01|00:00:00|1.2.3.4|put\n')

        server = FileExchangeServer(ServerConfig(store_dir=str(store_dir),
                                                 request_log_path=str(log_path)))
        server.prepare_storage()

        self.assertEqual(sorted(p.name for p in store_dir.iterdir()), ['kept.txt'])
        self.assertEqual(log_path.read_text(), '')

    def test_port_in_use_is_fatal(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(('127.0.0.1', 0))
            blocker.listen()
            port = blocker.getsockname()[1]

            status = main([
                '--host', '127.0.0.1', '--port', str(port),
                '--store-dir', str(self.root / 'serverFiles'),
                '--log-file', str(self.root / 'log.txt')
            ])

        self.assertEqual(status, 1)

    def test_unwritable_log_is_fatal(self):
        blocker = self.root / 'blocker'
        blocker.write_text('not a directory')

        status = main([
            '--host', '127.0.0.1', '--port', '0',
            '--store-dir', str(self.root / 'serverFiles'),
            '--log-file', str(blocker / 'log.txt')
        ])

        self.assertEqual(status, 1)

    def test_invalid_pool_size_is_a_usage_error(self):
        with patch('sys.stderr'):
            with self.assertRaises(SystemExit) as cm:
                main(['--pool-size', '0'])
        self.assertEqual(cm.exception.code, 2)


if __name__ == '__main__':
    unittest.main()
