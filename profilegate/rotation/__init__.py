"""Resource rotation package -- durable stores, cyclic and consume-and-remove rotation."""

from profilegate.rotation.fallback import FallbackDestinationFactory
from profilegate.rotation.rotator import CyclicRotation, ResourceRotator
from profilegate.rotation.store import (
    FileIndexStore,
    IndexStore,
    LineQueueStore,
    MemoryIndexStore,
    ProxyListStore,
)
from profilegate.rotation.types import ConfigInvalid, Drawn, Exhausted, ProxyDescriptor

__all__ = [
    "ConfigInvalid",
    "CyclicRotation",
    "Drawn",
    "Exhausted",
    "FallbackDestinationFactory",
    "FileIndexStore",
    "IndexStore",
    "LineQueueStore",
    "MemoryIndexStore",
    "ProxyDescriptor",
    "ProxyListStore",
    "ResourceRotator",
]
