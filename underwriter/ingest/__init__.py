"""
Document ingestion: rent rolls, offering memorandum text, field extraction.

These run before the engine and surface their own failures.
"""


class DocumentExtractionError(Exception):
    """No usable text could be read from a document."""


class RentRollParseError(Exception):
    """A rent roll file could not be read into unit lines."""


class FieldExtractionError(Exception):
    """The completion service gave no usable property facts."""


class ExtractionServiceError(FieldExtractionError):
    """The completion service could not be reached or is not configured."""


__all__ = [
    "DocumentExtractionError",
    "RentRollParseError",
    "FieldExtractionError",
    "ExtractionServiceError",
]
