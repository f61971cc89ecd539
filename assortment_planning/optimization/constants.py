"""Centralized constants for the assortment pricing model.

This module contains the identifiers, tolerances and solver defaults shared by
model building, solving and solution extraction.
"""

from ..models.segment import NO_PURCHASE  # noqa: F401  (re-exported)


# ============================================================================
# VARIABLE FAMILIES
# ============================================================================

#: Product carried for the whole horizon (binary)
VAR_ASSORT = "assort"

#: Order placed for product in period (binary)
VAR_SETUP = "setup"

#: Selling price of product in period (continuous, capped)
VAR_PRICE = "price"

#: Order quantity, end-of-period inventory and realized demand (continuous)
VAR_ORDER = "order"
VAR_INVENTORY = "inventory"
VAR_DEMAND = "demand"

#: Segment choice in period, over products plus NO_PURCHASE (binary)
VAR_CHOICE = "choice"

#: Linearized price × choice[segment, product, period]
VAR_CHOICE_PRICE = "choice_price"

#: Linearized price × assort[product]
VAR_ASSORT_PRICE = "assort_price"

#: Families in registration order (also the Pyomo component order)
VARIABLE_FAMILIES = (
    VAR_ASSORT,
    VAR_SETUP,
    VAR_PRICE,
    VAR_ORDER,
    VAR_INVENTORY,
    VAR_DEMAND,
    VAR_CHOICE,
    VAR_CHOICE_PRICE,
    VAR_ASSORT_PRICE,
)

#: Families whose values must be rounded to {0, 1}
BINARY_FAMILIES = (VAR_ASSORT, VAR_SETUP, VAR_CHOICE)


# ============================================================================
# NUMERIC TOLERANCES
# ============================================================================

#: Maximum distance from 0 or 1 for a binary value to be accepted
BINARY_TOLERANCE = 1e-5

#: Absolute tolerance for invariant checks on extracted solutions
#: (scaled up by magnitude for large quantities, see solution_validator)
CONSISTENCY_TOLERANCE = 1e-4

#: Values below this are reported as exactly zero
ZERO_THRESHOLD = 1e-9


# ============================================================================
# SOLVER DEFAULTS
# ============================================================================

#: Every solve runs with a time budget (seconds)
DEFAULT_TIME_LIMIT_SECONDS = 60.0

#: Relative MIP gap at which the solver may stop
DEFAULT_MIP_GAP = 1e-6
