"""Celery tasks package for the asset importer."""
