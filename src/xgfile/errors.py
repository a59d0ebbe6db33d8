"""
Exceptions raised while reading XG game data files.
"""


class XGFileError(ValueError):
    """Base class for malformed XG input."""

    def __init__(self, message: str, filename: str = ""):
        self.filename = filename
        if filename:
            message = f"{message}: {filename}"
        super().__init__(message)


class NotAGameDataFormatFile(XGFileError):
    """Header magic number or version mismatch."""


class TruncatedInput(XGFileError):
    """Fewer bytes available than a fixed-layout field requires."""


class FormatInconsistency(XGFileError):
    """Structural metadata contradicts itself or the file size."""


class InvalidGameFile(XGFileError):
    """The extracted game file does not carry the DMLI marker."""
