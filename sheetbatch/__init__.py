"""sheetbatch: schema-validated Excel batch transformation engine."""

__version__ = "0.1.0"
