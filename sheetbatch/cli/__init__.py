"""Command line entrypoint (``python -m sheetbatch.cli``)."""
