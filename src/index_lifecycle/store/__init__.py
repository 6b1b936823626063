"""Object stores for derived objects.

Stores: InMemoryObjectStore, KubernetesObjectStore.
"""

from index_lifecycle.store.base import Deadline, ObjectStore
from index_lifecycle.store.kubernetes import KubernetesObjectStore
from index_lifecycle.store.memory import InMemoryObjectStore

__all__ = [
    "Deadline",
    "InMemoryObjectStore",
    "KubernetesObjectStore",
    "ObjectStore",
]
