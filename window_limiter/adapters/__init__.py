"""Adapters to external collaborators (counter stores)."""
