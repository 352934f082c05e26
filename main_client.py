#!/usr/bin/env python3
"""
Text File Exchange Client - Main Entry Point

Usage:
    python main_client.py list
    python main_client.py put <filename>

Optional arguments:
    --host HOST      Server address (default: localhost)
    --port PORT      Server port (default: 9487)
"""

import argparse
import asyncio
import logging
import socket
import sys

from client.files.file_client import FileClient
from client.utils.config import ClientConfig
from client.utils.logger import logger
from common.protocol_definitions import is_error_response


def build_parser() -> argparse.ArgumentParser:
    defaults = ClientConfig()
    parser = argparse.ArgumentParser(description='Text File Exchange Client')
    parser.add_argument('--host', type=str, default=defaults.host,
                        help=f'Server address (default: {defaults.host})')
    parser.add_argument('--port', type=int, default=defaults.port,
                        help=f'Server port (default: {defaults.port})')
    parser.add_argument('--verbose', action='store_true',
                        help='Show connection diagnostics')

    commands = parser.add_subparsers(dest='command', metavar='command')
    commands.required = True
    commands.add_parser('list', help='List the files stored on the server')
    put_parser = commands.add_parser('put', help='Upload a text file (max 64KB)')
    put_parser.add_argument('filename', help='Local file to upload')
    return parser


def run_list(client: FileClient) -> int:
    for line in asyncio.run(client.list_files()):
        print(line)
    return 0


def run_put(client: FileClient, filename: str) -> int:
    response = asyncio.run(client.put(filename))
    if is_error_response(response):
        print(response)
        return 1
    print(f"Uploaded file {filename}.")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logger.set_level(logging.INFO)

    client = FileClient(ClientConfig(args.host, args.port))
    try:
        if args.command == 'list':
            return run_list(client)
        return run_put(client, args.filename)
    except socket.gaierror as e:
        print(f"Server not found: {e}", file=sys.stderr)
    except OSError as e:
        print(f"I/O error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
