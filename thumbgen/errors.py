class ThumbgenError(Exception):
    """Base class for failures that are reported to the client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ThumbgenError):
    status_code = 400


class ConfigurationError(ThumbgenError):
    pass


class UpstreamError(ThumbgenError):
    """Non-2xx from an external API, or a response missing an expected field."""


class VideoNotFound(UpstreamError):
    pass


class ImageFetchFailed(UpstreamError):
    pass


class TitleGenerationFailed(UpstreamError):
    pass


class ThumbnailGenerationFailed(UpstreamError):
    pass


class ParseError(ValueError):
    """A generated reply could not be turned into a list of strings."""


class PersistenceError(Exception):
    """Insert into the results table failed. Logged, never sent to the client."""
