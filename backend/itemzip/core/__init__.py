"""Core configuration, logging, errors and request-level services."""
