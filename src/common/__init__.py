"""Shared helpers (logging, HTTP) used across the task."""
