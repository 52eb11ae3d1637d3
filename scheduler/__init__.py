"""Celery beat scheduling."""
