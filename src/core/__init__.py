"""Domain entities, request schemas and errors."""
