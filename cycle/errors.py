"""Exceptions raised by the period/symptom core."""


class PeriodTrackError(Exception):
    """Base class for all periodtrack errors."""


class SymptomCodecError(PeriodTrackError):
    """Encoding or decoding of a symptom list failed."""


class EncodingRejected(SymptomCodecError):
    """Input to ``encode`` was not a sequence of plain strings."""


class CorruptEncoding(SymptomCodecError):
    """Stored bytes are not a valid encoded symptom list."""


class PersistFailed(PeriodTrackError):
    """The store could not save the pending changes."""
