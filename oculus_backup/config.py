"""Configuration management for oculus-backup."""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

DEFAULT_COLLECTIONS: Tuple[str, ...] = (
    "students",
    "users",
    "announcements",
    "courses",
    "calendar",
    "schedules",
    "system",
)


def _parse_collections(raw: Optional[str]) -> Tuple[str, ...]:
    if raw and raw.strip():
        return tuple(name.strip() for name in raw.split(",") if name.strip())
    return DEFAULT_COLLECTIONS


@dataclass(frozen=True)
class StorageConfig:
    """Document storage backend configuration."""
    backend: str = "json"  # memory, json, redis
    working_dir: str = "./oculus_data"
    max_batch_operations: int = 500

    # Redis specific settings
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_key_prefix: str = "oculus"
    redis_max_connections: int = 50
    redis_connection_timeout: float = 5.0
    redis_socket_timeout: float = 5.0
    redis_health_check_interval: int = 30

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("STORAGE_BACKEND", "json"),
            working_dir=os.getenv("STORAGE_WORKING_DIR", "./oculus_data"),
            max_batch_operations=int(os.getenv("STORAGE_MAX_BATCH_OPERATIONS", "500")),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_key_prefix=os.getenv("REDIS_KEY_PREFIX", "oculus"),
            redis_max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            redis_connection_timeout=float(os.getenv("REDIS_CONNECTION_TIMEOUT", "5.0")),
            redis_socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5.0")),
            redis_health_check_interval=int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"memory", "json", "redis"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown storage backend: {self.backend}. Available: {valid_backends}")
        if self.max_batch_operations <= 0:
            raise ValueError(f"max_batch_operations must be positive, got {self.max_batch_operations}")


@dataclass(frozen=True)
class BackupConfig:
    """Backup archive and restore configuration."""
    backup_dir: str = "./backups"
    archive_suffix: str = ".utsbackup"
    archive_prefix: str = "uts_oculus_backup_"
    kdf_iterations: int = 390_000
    min_password_length: int = 6
    collections: Tuple[str, ...] = DEFAULT_COLLECTIONS
    max_concurrency: int = 4  # collections processed at once
    chunk_concurrency: int = 2  # batches in flight per collection phase
    retry_attempts: int = 3
    share_dir: Optional[str] = None  # outbox that archives are forwarded to

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            backup_dir=os.getenv("BACKUP_DIR", "./backups"),
            archive_suffix=os.getenv("BACKUP_ARCHIVE_SUFFIX", ".utsbackup"),
            archive_prefix=os.getenv("BACKUP_ARCHIVE_PREFIX", "uts_oculus_backup_"),
            kdf_iterations=int(os.getenv("BACKUP_KDF_ITERATIONS", "390000")),
            min_password_length=int(os.getenv("BACKUP_MIN_PASSWORD_LENGTH", "6")),
            collections=_parse_collections(os.getenv("BACKUP_COLLECTIONS")),
            max_concurrency=int(os.getenv("BACKUP_MAX_CONCURRENCY", "4")),
            chunk_concurrency=int(os.getenv("BACKUP_CHUNK_CONCURRENCY", "2")),
            retry_attempts=int(os.getenv("BACKUP_RETRY_ATTEMPTS", "3")),
            share_dir=os.getenv("BACKUP_SHARE_DIR") or None,
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.archive_suffix.startswith("."):
            raise ValueError(f"archive_suffix must start with '.', got {self.archive_suffix!r}")
        if self.kdf_iterations <= 0:
            raise ValueError(f"kdf_iterations must be positive, got {self.kdf_iterations}")
        if self.min_password_length < 1:
            raise ValueError(f"min_password_length must be at least 1, got {self.min_password_length}")
        if not self.collections:
            raise ValueError("collections must not be empty")
        if self.max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {self.max_concurrency}")
        if self.chunk_concurrency <= 0:
            raise ValueError(f"chunk_concurrency must be positive, got {self.chunk_concurrency}")
        if self.retry_attempts <= 0:
            raise ValueError(f"retry_attempts must be positive, got {self.retry_attempts}")


@dataclass(frozen=True)
class OculusConfig:
    """Main oculus-backup configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)

    @classmethod
    def from_env(cls) -> 'OculusConfig':
        """Create complete config from environment variables."""
        return cls(
            storage=StorageConfig.from_env(),
            backup=BackupConfig.from_env(),
        )

    def to_dict(self) -> dict:
        """Convert config to the global_config dictionary handed to storages."""
        config_dict = {
            'working_dir': self.storage.working_dir,
            'max_batch_operations': self.storage.max_batch_operations,
        }

        if self.storage.backend == "redis":
            config_dict['redis_url'] = self.storage.redis_url
            config_dict['redis_password'] = self.storage.redis_password
            config_dict['redis_key_prefix'] = self.storage.redis_key_prefix
            config_dict['redis_max_connections'] = self.storage.redis_max_connections
            config_dict['redis_connection_timeout'] = self.storage.redis_connection_timeout
            config_dict['redis_socket_timeout'] = self.storage.redis_socket_timeout
            config_dict['redis_health_check_interval'] = self.storage.redis_health_check_interval

        return config_dict


def validate_config(config: OculusConfig) -> list[str]:
    """Validate configuration and return list of warnings.

    Args:
        config: configuration to validate

    Returns:
        List of warning messages (empty if no issues)
    """
    warnings = []

    if config.backup.kdf_iterations < 100_000:
        warnings.append(f"Low kdf_iterations ({config.backup.kdf_iterations}) weakens archive passwords")

    if config.backup.min_password_length < 6:
        warnings.append(f"min_password_length ({config.backup.min_password_length}) is below 6")

    if config.storage.backend == "memory":
        warnings.append("Memory storage does not persist across restarts")

    if config.backup.chunk_concurrency * config.backup.max_concurrency > 64:
        warnings.append("High restore concurrency may overload the document store")

    return warnings
