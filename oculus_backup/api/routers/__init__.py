"""API routers."""

from . import health, jobs, backup

__all__ = ["health", "jobs", "backup"]
