"""Per-file conversion errors. None of these abort a batch."""


class ConversionError(Exception):
    """Base class for failures that end one file's conversion."""


class CapabilityError(ConversionError):
    """The requested output codec cannot be encoded in this environment."""


class UnsupportedFormatError(ConversionError):
    """The output format selector does not name a known codec."""


class DecodeError(ConversionError):
    """Input bytes could not be turned into a pixel surface."""


class EncodeError(ConversionError):
    """Every encode attempt for a file produced no output."""
