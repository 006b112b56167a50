"""
Core Package

This package contains the core algorithmic logic for the heatmap engine.

Structure:
- weights.py  - Severity/time-decay weighting
- filters.py  - Filter pipeline
- spatial/    - Raw, grid and clustered aggregation
- priority.py - Zone/category risk scoring
- presets.py  - Preset and custom config resolution
- stats.py    - Distribution summaries
- pipeline.py - End-to-end entry points

Usage:
Core modules are imported by the api layer and the CLI. Do not import api modules from core.
"""
