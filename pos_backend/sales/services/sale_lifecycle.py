"""
SALE RECORD LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions
for SaleRecord bills.

  COMPLETED_ORIGINAL -> ADJUSTED_ACTIVE     (first return)
  ADJUSTED_ACTIVE    -> ADJUSTED_ACTIVE     (more returns / partial undo)
  ADJUSTED_ACTIVE    -> COMPLETED_ORIGINAL  (collapse; zero active returns only)

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from sales.services.bill_snapshot import (
    STATUS_ADJUSTED_ACTIVE,
    STATUS_COMPLETED_ORIGINAL,
)

# ============================================================
# DOMAIN ERRORS
# ============================================================


class SaleLifecycleError(Exception):
    pass


class InvalidSaleTransitionError(SaleLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

ALLOWED_TRANSITIONS = {
    STATUS_COMPLETED_ORIGINAL: {
        STATUS_ADJUSTED_ACTIVE,
    },
    STATUS_ADJUSTED_ACTIVE: {
        STATUS_ADJUSTED_ACTIVE,
        STATUS_COMPLETED_ORIGINAL,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str, active_returns: int = 0) -> bool:
    if to_status not in ALLOWED_TRANSITIONS.get(from_status, set()):
        return False

    if to_status == STATUS_COMPLETED_ORIGINAL:
        return active_returns == 0

    if to_status == STATUS_ADJUSTED_ACTIVE:
        return active_returns > 0

    return True


def validate_transition(*, from_status: str, to_status: str, active_returns: int, label: str = "Sale"):
    if not can_transition(
        from_status=from_status,
        to_status=to_status,
        active_returns=active_returns,
    ):
        raise InvalidSaleTransitionError(
            f"{label} cannot transition from "
            f"'{from_status}' to '{to_status}' with {active_returns} active return(s)"
        )
