"""Named tolerances and limits used across the oxide contour pipeline."""

from __future__ import annotations

import math

TWO_PI = 2.0 * math.pi

# Upper bound for any evaluated growth amount (um).
MAX_THICKNESS = 10.0

# Thickness at or below this is treated as "no growth": the inner point is
# pinned onto the outer point.
ZERO_EPS = 1e-9

# Generic geometric tolerance for lengths, areas and orientation tests.
GEOM_EPS = 1e-6

# Two disk centers closer than this are treated as concentric.
CENTER_EPS = 1e-6

# Radius tolerance for containment / tangency checks between disks.
RADIUS_EPS = 1e-5

# Visible arc pieces shorter than this (radians) are dropped.
ARC_EPS = 1e-9

# Directional weights whose angles differ by less than this are duplicates.
ANGLE_DUPLICATE_EPS_DEG = 1e-3

# Dense loop points closer than DEDUPE_FRACTION * resolution are merged.
DEDUPE_FRACTION = 0.25

# Subdivisions used when walking a visible arc for the candidate point.
CANDIDATE_WALK_STEPS = 32

# Samples around the full circle for an endpoint compass patch.
COMPASS_STEPS = 64

# Open anchors closer than this are merged into a closed path.
ENDPOINT_MERGE_THRESHOLD = 4.0

# Default sampling spacing along the outer path (world units).
DEFAULT_SPACING = 12.0

# Minimum number of steps per Bezier segment for the adaptive sampler.
DEFAULT_MIN_SAMPLES = 12

# Half-width of the tangent averaging window.
DEFAULT_NORMAL_WINDOW = 2

# Bounds for the derived envelope resolution.
MIN_RESOLUTION = 0.05
MAX_RESOLUTION = 0.5

# Lower bound for the cleanup simplify tolerance.
MIN_CLEANUP_TOLERANCE = 0.01

# Parameter step for the finite-difference curvature estimate.
CURVATURE_DT = 1e-3
