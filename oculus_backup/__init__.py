"""Snapshot backup and restore engine for the UTS Oculus portal."""

__version__ = "0.3.0"
__author__ = "UTS Oculus Team"
__url__ = "https://github.com/uts-oculus/oculus-backup"


def __getattr__(name):
    """Lazy import heavy modules."""
    if name == "BackupManager":
        from .backup.manager import BackupManager
        return BackupManager
    elif name == "OculusConfig":
        from .config import OculusConfig
        return OculusConfig
    elif name == "StorageFactory":
        from ._storage.factory import StorageFactory
        return StorageFactory
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["BackupManager", "OculusConfig", "StorageFactory", "__version__"]
