"""Configuration and data models."""
