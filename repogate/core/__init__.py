"""Core domain: models, permission resolution and services."""
