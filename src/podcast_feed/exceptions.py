"""Custom exceptions for podcast_feed.

Every failure surfaced by the public API is one of three kinds, so callers can
tell an unreachable server from a malformed feed from a feed that lacks
mandatory content:

Exception Hierarchy:
    PodcastFeedError (base)
    ├── ParsingError - Feed text is not a well-formed RSS document
    ├── RequiredFieldMissing - A mandatory field is absent from the feed
    └── FetchingError - The remote feed could not be retrieved
"""

from typing import Dict, Optional, Type


class PodcastFeedError(Exception):
    """Base exception for all podcast_feed errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
    """

    kind = "error"

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message with suggestion."""
        parts = [self.message]
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " ".join(parts)


class ParsingError(PodcastFeedError):
    """Raised when feed text cannot be parsed into an RSS document.

    Common causes:
    - Malformed XML (unclosed tags, bad encoding)
    - Forbidden XML constructs (entity expansion, external entities)
    - A well-formed document without an ``rss/channel`` element
    """

    kind = "parsingError"

    def __init__(self, message: str = "Parsing error.", suggestion: Optional[str] = None) -> None:
        super().__init__(message=message, suggestion=suggestion)


class RequiredFieldMissing(PodcastFeedError):
    """Raised when a field marked required is absent from the feed.

    Example:
        >>> raise RequiredFieldMissing(field="audio_file_url", record="episode", index=3)
    """

    kind = "requiredError"

    def __init__(
        self,
        field: Optional[str] = None,
        record: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.field = field
        self.record = record
        self.index = index
        message = "One or more required values are missing from feed."
        if field:
            where = record or "feed"
            if index is not None:
                where = f"{where} #{index}"
            message = f"Required field '{field}' is missing from {where}."
        super().__init__(message=message)


class FetchingError(PodcastFeedError):
    """Raised when a remote feed cannot be retrieved.

    Attributes:
        url: The URL that failed
        status_code: HTTP status code, when the server answered
    """

    kind = "fetchingError"

    def __init__(
        self,
        url: str,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        message = f"Fetching error: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message=message, suggestion=suggestion)


ERRORS: Dict[str, Type[PodcastFeedError]] = {
    ParsingError.kind: ParsingError,
    RequiredFieldMissing.kind: RequiredFieldMissing,
    FetchingError.kind: FetchingError,
}
