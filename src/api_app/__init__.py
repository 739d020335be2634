"""Orders REST API."""
