"""Aggregation, generation and delivery pipeline."""
