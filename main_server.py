#!/usr/bin/env python3
"""
Text File Exchange Server - Main Entry Point

Usage:
    python main_server.py

Optional arguments:
    --host HOST           Bind address (default: 0.0.0.0)
    --port PORT           TCP port (default: 9487)
    --store-dir DIR       Upload directory (default: serverFiles)
    --log-file FILE       Request log, recreated at startup (default: log.txt)
    --pool-size N         Worker tasks (default: 20)
    --queue-size N        Connections waiting for a worker (default: 20)
    --debug               Enable debug logging
"""

import sys

from server.main_server import main


if __name__ == "__main__":
    sys.exit(main())
