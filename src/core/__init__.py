"""Core: configuration, domain models, errors and services."""
