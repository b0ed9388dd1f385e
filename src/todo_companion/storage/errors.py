# src/todo_companion/storage/errors.py

from __future__ import annotations


class StorageError(RuntimeError):
    """Base class for persistence-layer failures."""


class StorageWriteError(StorageError):
    """The primary record could not be written."""


class CorruptRecordError(StorageError, ValueError):
    """A stored record exists but cannot be decoded into tasks."""
