"""
File handling module for server-side operations.

Handles:
- Per-connection list/put protocol
- File store management
- Serialised access to the store and the request log
"""
