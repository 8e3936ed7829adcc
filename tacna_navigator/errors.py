"""
Tacna Transit Navigator — Error taxonomy

Every failure the navigator can surface derives from NavigatorError, so the
HTTP layer can translate them without catching unrelated exceptions.
"""


class NavigatorError(Exception):
    """Base class for all navigator errors."""


class ValidationError(NavigatorError):
    """Stored or AI-supplied data does not match the expected shape."""


class DuplicateIdError(NavigatorError):
    """An admin tried to add a route whose id already exists."""

    field = "id"

    def __init__(self, route_id: str):
        super().__init__(f"Route id '{route_id}' already exists.")
        self.route_id = route_id


class StorageError(NavigatorError):
    """Reading or persisting the route collection failed (quota, disk, encoding)."""


class DirectionsUnavailableError(NavigatorError):
    """The mapping-directions service failed or returned nothing usable."""


class InvalidInputError(NavigatorError):
    """Origin or destination is missing; raised before any external call."""


class GeocodingError(NavigatorError):
    """The geocoding service could not be reached."""
