"""
Exception types shared across services.

Data-quality problems never raise; these exist for contract violations
and for failures of the row store itself.
"""


class AggregationParameterError(ValueError):
    """Invalid static parameter passed to an aggregation (a programming error)."""
    pass


class RowStoreError(Exception):
    """A row-store read or write failed at the database level."""

    def __init__(self, message: str, table: str = ""):
        super().__init__(message)
        self.table = table
