"""Catalog ingestion: extraction, reconciliation, and the sweep pipeline."""
