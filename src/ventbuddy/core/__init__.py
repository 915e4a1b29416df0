"""Core configuration for the Ventbuddy service."""
