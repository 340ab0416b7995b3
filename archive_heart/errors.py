"""
Error taxonomy for the timeline pipeline.

Each error is terminal for the operation that raised it and carries the
message shown to the user.
"""


class TimelineError(Exception):
    """Base class for all pipeline failures."""

    user_message = "something went wrong"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class ParseError(TimelineError):
    """The uploaded file could not be decoded as tabular text."""

    user_message = "could not read file"


class EmptyDatasetError(TimelineError):
    """No valid tracks were left to build a timeline from."""

    user_message = "no valid tracks found"


class CompressionError(TimelineError):
    """A share payload could not be serialized or compressed."""

    user_message = "failed to generate link"


class DecodeError(TimelineError):
    """A share link could not be turned back into a payload."""

    user_message = "link invalid or corrupted"
