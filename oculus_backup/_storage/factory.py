"""Storage factory for centralized backend creation."""

from typing import Type, Dict, Callable
from oculus_backup.base import BaseDocumentStorage


class StorageFactory:
    """Factory for creating document storage backends with validation and registration."""

    _document_backends: Dict[str, Callable[[], Type[BaseDocumentStorage]]] = {}

    ALLOWED_DOCUMENT = {"memory", "json", "redis"}

    @classmethod
    def register_document(cls, name: str, backend_loader: Callable[[], Type[BaseDocumentStorage]]) -> None:
        """Register a document storage backend.

        Args:
            name: Backend name (must be in ALLOWED_DOCUMENT)
            backend_loader: Function that returns the document storage class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_DOCUMENT:
            raise ValueError(f"Backend {name} not in allowed document backends: {cls.ALLOWED_DOCUMENT}")
        cls._document_backends[name] = backend_loader

    @classmethod
    def create_document_storage(
        cls,
        backend: str,
        global_config: dict,
        **kwargs
    ) -> BaseDocumentStorage:
        """Create a document storage instance.

        Args:
            backend: Backend name
            global_config: Global configuration dict
            **kwargs: Additional backend-specific parameters

        Returns:
            Initialized document storage instance

        Raises:
            ValueError: If backend not registered
        """
        if backend not in cls._document_backends:
            # Try to register backends if not already done
            _register_backends()
            if backend not in cls._document_backends:
                raise ValueError(f"Unknown document backend: {backend}. Available: {list(cls._document_backends.keys())}")

        backend_class = cls._document_backends[backend]()
        return backend_class(global_config=global_config, **kwargs)


def _get_memory_storage():
    """Lazy loader for in-memory storage."""
    from .doc_memory import MemoryDocumentStorage
    return MemoryDocumentStorage


def _get_json_storage():
    """Lazy loader for JSON file storage."""
    from .doc_json import JsonDocumentStorage
    return JsonDocumentStorage


def _get_redis_storage():
    """Lazy loader for Redis storage."""
    from .doc_redis import RedisDocumentStorage
    return RedisDocumentStorage


def _register_backends():
    """Register built-in backends with lazy loaders. Called when factory is first used."""
    if not StorageFactory._document_backends:
        StorageFactory.register_document("memory", _get_memory_storage)
        StorageFactory.register_document("json", _get_json_storage)
        StorageFactory.register_document("redis", _get_redis_storage)
