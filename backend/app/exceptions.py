"""
Domain exceptions shared by services, storage and the vision client.
API exception handlers in app.main translate these to HTTP responses.
"""
from typing import Optional, Union


class ConfigurationError(Exception):
    """Required configuration is missing. Never retried automatically."""


class StorageConfigError(ConfigurationError):
    """Object storage credentials/bucket/region/endpoint are missing."""


class VisionConfigError(ConfigurationError):
    """Vision provider API key is missing."""


class NotFoundError(LookupError):
    """An operation referenced a row that does not exist."""

    def __init__(self, entity: str, entity_id: Optional[Union[int, str]] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class VisionAPIError(Exception):
    """The vision provider answered with an error or an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class InvalidStateError(Exception):
    """A state change the entity's lifecycle does not allow."""
