"""Data Alchemist: validation and consistency engine for clients, workers and tasks."""

__version__ = "0.1.0"
