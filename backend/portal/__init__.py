"""Workplace resource-request portal backend."""
