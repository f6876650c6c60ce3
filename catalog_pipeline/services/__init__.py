"""Classification, batch and ingest services."""
