# -*- coding: utf-8 -*-
"""
Academic Admin Service Layer
"""

# Lazy imports to avoid circular dependencies
__all__ = [
    "DirectoryApiClient",
    "MockDirectory",
    "DraftStore",
    "DraftConfig",
    "QtTaskRunner",
    "ImmediateTaskRunner",
]


def __getattr__(name):
    """Lazy import to avoid circular dependencies."""
    if name == "DirectoryApiClient":
        from .api_client import DirectoryApiClient
        return DirectoryApiClient
    elif name == "MockDirectory":
        from .mock_directory import MockDirectory
        return MockDirectory
    elif name == "DraftStore":
        from .draft_store import DraftStore
        return DraftStore
    elif name == "DraftConfig":
        from .draft_store import DraftConfig
        return DraftConfig
    elif name == "QtTaskRunner":
        from .task_runner import QtTaskRunner
        return QtTaskRunner
    elif name == "ImmediateTaskRunner":
        from .task_runner import ImmediateTaskRunner
        return ImmediateTaskRunner
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
