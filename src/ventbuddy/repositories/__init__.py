"""Data access helpers for Ventbuddy entities."""
