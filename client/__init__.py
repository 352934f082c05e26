"""
Client package for the text file exchange service.

This package contains all client-side functionality including:
- File listing and upload requests
- Configuration and utilities
"""
