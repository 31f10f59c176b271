"""
Code Explorer Utility Library.

Modules:
--------
logging_setup
    Logging configuration utilities.
file_io
    Atomic JSON file reading and writing.
scheduling
    Periodic asyncio background tasks.
"""

from code_explorer.utils.logging_setup import setup_logging
from code_explorer.utils.file_io import atomic_write_json, ensure_directory, read_json
from code_explorer.utils.scheduling import PeriodicTask
