"""Configuration and HTTP middleware."""
