"""Workspace store backends."""

from wsmanager.controller.store.base import WatchEvent, WorkspaceStore, WorkspaceWriter
from wsmanager.controller.store.memory import InMemoryWorkspaceStore

__all__ = ["InMemoryWorkspaceStore", "WatchEvent", "WorkspaceStore", "WorkspaceWriter"]
