"""Core domain services for the asset importer."""
