"""
This file contains custom, application-specific exceptions.
"""

class InvalidDateRangeError(Exception):
    """Raised when a report is requested without a usable date range."""
    pass

class StudentNotFoundError(Exception):
    """Raised when a student ID has no matching (non-deleted) student record."""
    pass
