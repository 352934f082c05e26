"""
Server package for the text file exchange service.

This package contains all server-side functionality including:
- Connection acceptance and the worker pool
- List and upload request handling
- File store and request log access
- Configuration and utilities
"""
