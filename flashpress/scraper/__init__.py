"""News provider connector and content extraction."""
