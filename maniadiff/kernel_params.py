"""
Kernel Parameters Module - All Tunable Constants

Every number the strain kernel and density reducer use lives here, so that
tuning never requires touching the algorithm itself.

Several revisions of the strain algorithm disagreed on anchor tolerance
(47 ms, 90 ms, none), hand-nerf multiplier (0.12, 0.35, scaled) and the
anchor/trill caps. The defaults below are the canonical table; every value
can be overridden per instance.

USAGE:
    from maniadiff.kernel_params import KernelConfig, DEFAULT_CONFIG

    # Use default config
    config = DEFAULT_CONFIG

    # Create custom config
    custom = KernelConfig(
        strain=StrainParams(hand_nerf_multiplier=0.12),
        density=DensityParams(keep_count=40)
    )
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Optional


@dataclass(frozen=True)
class StrainParams:
    """
    Per-note strain evaluator parameters.

    Attributes:
        individual_decay_base: Per-second retention of per-column strain (default 0.125)
        overall_decay_base: Per-second retention of the global strain (default 0.30)
        release_threshold: Release gap in ms where the hold addition reaches 0.5 (default 24)
        release_steepness: Slope of the release logistic curve (default 0.5)
        held_hold_factor: Multiplier applied while another column is held through the note (default 1.25)
        base_individual_strain: Strain added to a column per note (default 2.0)
        initial_overall_strain: Global strain before the first note (default 1.0)
        overlap_leniency: Margin in ms for "definitely bigger" time comparisons (default 1.0)
        chord_threshold: Max delta time in ms for a note to join the previous chord (default 1.0)
        anchor_tolerance: Max change in same-column gap that keeps an anchor run alive,
            in ms. None uses the great hit window (default None)
        min_anchor: Anchor length at which the anchor bonus starts (default 2)
        max_anchor: Cap on the anchor length used for the bonus (default 5)
        anchor_bonus: Strain added per unit of effective anchor length (default 0.25)
        trill_min_time: Max gap in ms to the adjacent column for a trill (default 400)
        max_trill: Cap on the trill run length (default 4)
        trill_bonus: Fraction of adjacent strain added per trill step (default 0.1)
        trill_anchor_limit: Anchor length at which a neighbour is too anchored to trill with (default 5)
        idle_threshold: Gap in ms after which a column pair counts as idle (default 2000)
        hand_nerf_multiplier: Multiplier for a hand made only of easy anchors (default 0.35)
    """
    individual_decay_base: float = 0.125
    overall_decay_base: float = 0.30
    release_threshold: float = 24.0
    release_steepness: float = 0.5
    held_hold_factor: float = 1.25
    base_individual_strain: float = 2.0
    initial_overall_strain: float = 1.0
    overlap_leniency: float = 1.0
    chord_threshold: float = 1.0
    anchor_tolerance: Optional[float] = None
    min_anchor: int = 2
    max_anchor: int = 5
    anchor_bonus: float = 0.25
    trill_min_time: float = 400.0
    max_trill: int = 4
    trill_bonus: float = 0.1
    trill_anchor_limit: int = 5
    idle_threshold: float = 2000.0
    hand_nerf_multiplier: float = 0.35


@dataclass(frozen=True)
class DensityParams:
    """
    Density reducer parameters.

    Attributes:
        window_ms: Length of one notes-per-second window (default 1000)
        trim_threshold: Sample count above which the tail is discarded (default 50)
        keep_count: Number of highest samples kept when trimming (default 35)
        empty_value: Value returned when there are no samples (default 0.0)
        flush_final_window: Record the last, still-open window as a sample (default True)
        column_offset: Column offset in the normalisation denominator (default 4)
        column_base: Per-column base in the normalisation denominator (default 0.85)
    """
    window_ms: float = 1000.0
    trim_threshold: int = 50
    keep_count: int = 35
    empty_value: float = 0.0
    flush_final_window: bool = True
    column_offset: float = 4.0
    column_base: float = 0.85


@dataclass(frozen=True)
class SectionParams:
    """
    Strain section parameters.

    Attributes:
        section_length: Length of a strain section in ms (default 400)
        skill_multiplier: Scale applied to each contribution (default 1.0)
        strain_decay_base: Per-second retention of the running strain (default 1.0, no decay)
    """
    section_length: float = 400.0
    skill_multiplier: float = 1.0
    strain_decay_base: float = 1.0


@dataclass
class KernelConfig:
    """
    Complete kernel configuration aggregating all parameter groups.

    Example usage:
        config = KernelConfig()  # All defaults
        config = KernelConfig(strain=StrainParams(max_anchor=8))  # Override specific params
    """
    strain: StrainParams = field(default_factory=StrainParams)
    density: DensityParams = field(default_factory=DensityParams)
    section: SectionParams = field(default_factory=SectionParams)

    def to_dict(self) -> Dict:
        """
        Export all parameters as a flat dictionary for JSON serialization.

        Returns:
            Dictionary with all parameter values, prefixed by group
        """
        flat = {}
        for group_name, group in (('strain', self.strain),
                                  ('density', self.density),
                                  ('section', self.section)):
            for key, value in asdict(group).items():
                flat[f'{group_name}_{key}'] = value
        return flat


# Default configuration instance
DEFAULT_CONFIG = KernelConfig()


def validate_config(config: KernelConfig) -> bool:
    """
    Validate configuration parameters for consistency.

    Parameters:
        config: KernelConfig instance to validate

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    strain = config.strain

    # Decay bases must retain a fraction of the value
    if not (0.0 < strain.individual_decay_base <= 1.0):
        raise ValueError("individual_decay_base must be in (0, 1]")
    if not (0.0 < strain.overall_decay_base <= 1.0):
        raise ValueError("overall_decay_base must be in (0, 1]")

    if strain.held_hold_factor < 1.0:
        raise ValueError("held_hold_factor must be >= 1")
    if strain.base_individual_strain < 0 or strain.initial_overall_strain < 0:
        raise ValueError("strain seeds must be non-negative")
    if strain.chord_threshold < 0 or strain.overlap_leniency < 0:
        raise ValueError("chord_threshold and overlap_leniency must be non-negative")
    if strain.anchor_tolerance is not None and strain.anchor_tolerance < 0:
        raise ValueError("anchor_tolerance must be non-negative")

    # Caps
    if strain.min_anchor < 1:
        raise ValueError("min_anchor must be at least 1")
    if strain.max_anchor < strain.min_anchor:
        raise ValueError("max_anchor must be >= min_anchor")
    if strain.max_trill < 1:
        raise ValueError("max_trill must be at least 1")
    if strain.trill_anchor_limit < 1:
        raise ValueError("trill_anchor_limit must be at least 1")
    if strain.anchor_bonus < 0 or strain.trill_bonus < 0:
        raise ValueError("anchor_bonus and trill_bonus must be non-negative")
    if strain.trill_min_time <= 0 or strain.idle_threshold <= 0:
        raise ValueError("trill_min_time and idle_threshold must be positive")
    if not (0.0 <= strain.hand_nerf_multiplier <= 1.0):
        raise ValueError("hand_nerf_multiplier must be in [0, 1]")

    density = config.density
    if density.window_ms <= 0:
        raise ValueError("window_ms must be positive")
    if density.keep_count <= 0:
        raise ValueError("keep_count must be positive")
    if density.trim_threshold < density.keep_count:
        raise ValueError("trim_threshold must be >= keep_count")
    if density.column_base <= 0:
        raise ValueError("column_base must be positive")

    section = config.section
    if section.section_length <= 0:
        raise ValueError("section_length must be positive")
    if not (0.0 < section.strain_decay_base <= 1.0):
        raise ValueError("strain_decay_base must be in (0, 1]")

    return True


# Validate default config on import
validate_config(DEFAULT_CONFIG)
