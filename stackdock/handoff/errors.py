"""Handoff exceptions."""


class HandoffError(Exception):
    """Deployer output could not be turned into a valid env file."""


class QueryPathError(HandoffError):
    """A handoff query path is malformed or cannot be applied to the document."""


class MissingFieldError(HandoffError):
    """A handoff query matched nothing (absent key or explicit null)."""

    def __init__(self, key, source, query):
        self.key = key
        self.source = source
        self.query = query
        super().__init__(f"{key}: no value at '{query}' in {source}")


class HandoffValidationError(HandoffError):
    """The env file on the volume does not match the handoff contract."""
