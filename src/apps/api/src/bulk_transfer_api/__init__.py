"""Bulk import/export HTTP API."""
