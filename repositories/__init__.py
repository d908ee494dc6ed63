# -*- coding: utf-8 -*-
"""
Academic Admin Repository Layer
"""

from .local_storage import KeyValueStorage, MemoryStorage, SQLiteStorage

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "SQLiteStorage",
]
