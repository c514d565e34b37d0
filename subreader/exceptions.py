"""Custom Exceptions for the SubReader application."""

class SubReaderError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(SubReaderError):
    """Exception raised for errors in configuration loading."""
    pass

class EncodingError(SubReaderError):
    """Exception raised when an uploaded buffer is empty or cannot be decoded."""
    pass

class CueIndexError(SubReaderError, IndexError):
    """Exception raised when a cue is looked up outside the sequence bounds."""
    pass

class TranslationError(SubReaderError):
    """Exception raised for errors during translation."""
    pass

class FileSystemError(SubReaderError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
