"""
Error Types

Exception hierarchy shared by the parser, the ingestion pipeline and the API.
"""


class LogAnalyzerError(Exception):
    """Base class for every error raised by the analyzer"""


class StreamError(LogAnalyzerError):
    """The input stream could not be read; aborts the whole ingestion run"""


class FormatError(LogAnalyzerError):
    """A single line does not match its grammar; recorded and counted"""


class ValidationError(FormatError):
    """A required field (IP address, status code) is malformed"""


class IngestionCancelled(LogAnalyzerError):
    """Ingestion stopped early because of a cancel signal or deadline"""
