"""Upstream data clients."""
