"""Configuration loading and plain-structure serialization."""
