"""
File transfer module for client-side file operations.

Handles:
- File listing requests
- File uploads to server with local size check
"""
