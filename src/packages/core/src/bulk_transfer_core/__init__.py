"""Bulk import and export of users, articles and comments."""
