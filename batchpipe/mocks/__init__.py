"""Local stand-ins for external services."""
