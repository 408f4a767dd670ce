"""External search providers."""
