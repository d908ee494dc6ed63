# -*- coding: utf-8 -*-
"""
Academic Admin Application Core Module
"""

from .config import Config, EntityKinds, RetryPolicy

__all__ = ["Config", "EntityKinds", "RetryPolicy"]
