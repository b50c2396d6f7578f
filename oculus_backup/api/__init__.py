"""FastAPI service exposing backup and restore."""
