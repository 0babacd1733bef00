"""Logging setup and the structured error log."""
