"""Prometheus metrics for serving and refresh cycles."""
