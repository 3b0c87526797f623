"""Backing document store adapters.

:class:`DocumentStore` is the structural interface every component talks
to.  :class:`MemoryStore` is a process-local implementation used for
tests and single-node runs; :mod:`fleetscan.store.firebase` adapts a
Firebase Realtime Database (optional ``firebase`` extra, imported on
demand).
"""

from fleetscan.store.base import DocumentStore, join_path
from fleetscan.store.memory import MemoryStore

__all__ = ["DocumentStore", "MemoryStore", "join_path"]
