"""
mania-difficulty - Configuration

Application-level defaults for the CLI, exports and golden references.
Kernel tuning constants live in maniadiff/kernel_params.py.
Every default value includes rationale.
"""


# =============================================================================
# CHART DEFAULTS
# =============================================================================

# Overall difficulty assumed when a chart specifies neither OD nor a hit window
# Why: OD 8 is the most common value for ranked 4K/7K charts, giving a great
#      window of 40 ms, a reasonable middle ground for anchor tolerance
DEFAULT_OVERALL_DIFFICULTY: float = 8.0

# =============================================================================
# OUTPUT PARAMETERS
# =============================================================================

# JSON schema version
# Why: Versioning allows future format changes while maintaining compatibility
SCHEMA_VERSION: str = "1.0.0"

# Kernel version (algorithm version, bump when strain or density logic changes)
# Why: Allows tracking which algorithm version produced specific outputs
KERNEL_VERSION: str = "1.0.0"

# Number of highest section peaks listed in summaries
# Why: 5 is enough to see where a chart spikes without repeating the curve
TOP_N_PEAKS: int = 5

# Plot resolution (dots per inch)
# Why: 150 DPI is good balance of quality and file size for screen viewing
PLOT_DPI: int = 150

# Plot figure size (width, height in inches)
# Why: 14x8 inches leaves room for a long chart timeline and two stacked panels
PLOT_FIGSIZE: tuple = (14, 8)

# Chart file extensions picked up when the CLI is given a directory
# Why: charts are plain JSON
CHART_EXTENSIONS: tuple = ('.json',)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def validate_config() -> bool:
    """
    Validate configuration parameters for consistency.

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    if not (0.0 <= DEFAULT_OVERALL_DIFFICULTY <= 10.0):
        raise ValueError("DEFAULT_OVERALL_DIFFICULTY must be in [0, 10]")

    if TOP_N_PEAKS <= 0:
        raise ValueError("TOP_N_PEAKS must be positive")

    return True


# Validate on import
validate_config()
