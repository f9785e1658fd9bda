"""
Storage layer: staging source, cleansed store and quarantine sink.
"""

from .store import (
    CleansedStore,
    InMemoryCleansedStore,
    InMemoryQuarantineSink,
    InMemoryStagingSource,
    QuarantineSink,
    StagingSource,
)

__all__ = [
    "StagingSource",
    "CleansedStore",
    "QuarantineSink",
    "InMemoryStagingSource",
    "InMemoryCleansedStore",
    "InMemoryQuarantineSink",
]
