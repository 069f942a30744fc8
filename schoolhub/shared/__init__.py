"""Shared helpers used across layers (utils, request context, logging)."""
