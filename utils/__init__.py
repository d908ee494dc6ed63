# -*- coding: utf-8 -*-
"""
Academic Admin Utility Module
"""

from .logger import get_logger, redact, setup_logger

__all__ = [
    "get_logger",
    "redact",
    "setup_logger",
]
