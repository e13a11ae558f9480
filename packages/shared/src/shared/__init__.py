"""Shared primitives reused across GigHub services."""
