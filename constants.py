"""
Numerical constants and tolerances for the technology-adoption threshold model.

Centralizes epsilon definitions and search defaults to ensure consistency
across the codebase.
"""

import math
import sys

# Small epsilon for numerical comparisons and bounds
# Used for:
# - Root finding tolerance (xtol) in the declared-emissions solver
# - Accepting a root exactly at an endpoint of [0, e*]
EPSILON = 1e-12

# Looser epsilon for classification and comparison tolerances
# Used for:
# - Discarding imaginary parts of polynomial roots
# - Merging numerically repeated roots of the marginal condition
# - Relative tie tolerance when comparing disutilities across technologies
LOOSE_EPSILON = 1e-8

# Default upper bound of the investment-cost search
DEFAULT_SEARCH_CEILING = 2375

# Default decrement of the investment-cost search
DEFAULT_SEARCH_STEP = 1

# Largest x with exp(x) representable as a double (about 709.78)
# Used for:
# - Reporting disutilities above the double range as inf instead of overflowing
MAX_LOG_FLOAT = math.log(sys.float_info.max)
