"""Utility helpers for covergate."""
