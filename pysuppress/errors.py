"""
Exceptions raised by pysuppress.

All of them derive from ValueError so callers that already guard against bad
arguments keep working.
"""


class InvalidArgumentError(ValueError):
    """Raised when a numeric parameter (risk threshold, iteration count, ...) is out of range."""


class EmptyInputError(ValueError):
    """Raised when a metric is requested over a dataset or sample set with nothing in it."""


class UnknownAttributeError(ValueError):
    """Raised when an attribute name or column index does not exist in a dataset."""
