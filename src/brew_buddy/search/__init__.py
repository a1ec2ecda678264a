"""Vibe search over stored item embeddings."""
