"""HTTP API for search and annotations."""
