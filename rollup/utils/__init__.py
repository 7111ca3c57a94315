"""Shared helpers (error handling, number formatting)."""
