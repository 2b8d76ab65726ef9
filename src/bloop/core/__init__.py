"""Core utilities: canonical JSON, request signing, logging and settings."""
