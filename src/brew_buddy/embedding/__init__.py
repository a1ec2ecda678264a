"""Embedding backends, vector codec, and the cache-aside layer."""
