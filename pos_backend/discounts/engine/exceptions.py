# discounts/engine/exceptions.py

"""
DISCOUNT ENGINE ERRORS

Centralized domain errors for the discount engine.

Policy:
- Bad RULE data never aborts a calculation: the loader / resolvers log a
  ConfigurationError and skip that single rule.
- Quantity and money violations are not raised here; they belong to the
  sales return services (see sales/services/exceptions.py).
"""


class DiscountEngineError(Exception):
    """Base exception for all discount engine failures."""


class ConfigurationError(DiscountEngineError):
    """Raised when a rule config is malformed or references a missing product."""
