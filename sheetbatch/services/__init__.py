"""Engine services: validation, task running, orchestration, consolidation, review."""
