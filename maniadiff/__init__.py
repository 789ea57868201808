"""
mania-difficulty - Source Modules

This package contains the core modules for deterministic chart difficulty analysis:
- notes: Raw notes, difficulty notes and chord grouping
- kernel: Per-note strain evaluator
- kernel_params: Tunable constants
- sections: Strain section peaks
- density: Notes-per-second density rating
- timebase: Rate rescaling and section arithmetic
- pipeline: One chart through the full kernel
- chart_io: Chart loading and playback settings
- export: JSON and plot generation
"""

__version__ = "1.0.0"
