"""
Resources module - durable storage of dialogue graphs.
"""

from engine.resources.store import BlobStore, FileBlobStore, MemoryBlobStore
from engine.resources.gateway import PersistenceGateway, LoadResult, SaveResult
from engine.resources.schemas import BLOB_SCHEMA

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "PersistenceGateway",
    "LoadResult",
    "SaveResult",
    "BLOB_SCHEMA",
]
