"""Background worker for import and export jobs."""
