"""Shared helpers for racecatalog."""
