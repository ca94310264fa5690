"""Transformation pipeline core: command building, process execution,
artifact lifecycle, orchestration, and retention."""
