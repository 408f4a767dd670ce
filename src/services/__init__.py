"""Storage, auth, aggregation and configuration services."""
