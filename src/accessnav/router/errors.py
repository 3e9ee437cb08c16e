# errors.py
# Exception hierarchy shared by the router modules.


class AccessNavError(Exception):
    """Base class for all navigation errors."""
    pass


# ---------------------------------------------------------------------------
# Routing service
# ---------------------------------------------------------------------------

class RoutingError(AccessNavError):
    """Base class for routing-service failures."""
    pass


class RoutingUnavailable(RoutingError):
    """Network failure, HTTP error or timeout talking to the routing service."""
    pass


class NoRouteFound(RoutingError):
    """The service answered but returned no usable route."""
    pass


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

class GeocodingError(AccessNavError):
    pass


class AddressNotFound(GeocodingError):
    pass


class GeocodingUnavailable(GeocodingError):
    pass


# ---------------------------------------------------------------------------
# Live position source
# ---------------------------------------------------------------------------

class GeolocationError(AccessNavError):
    """Position source failure; user_message is what gets announced."""
    user_message = "Location is not available."


class GeolocationDenied(GeolocationError):
    user_message = "Location permission was denied. Navigation can only be started manually."


class GeolocationTimeout(GeolocationError):
    user_message = "Attention: GPS signal lost."


class GeolocationUnavailable(GeolocationError):
    user_message = "Location is currently unavailable."


# ---------------------------------------------------------------------------
# Segment store / authoring
# ---------------------------------------------------------------------------

class SegmentValidationError(AccessNavError, ValueError):
    """An accessible segment violates an authoring or ingestion rule."""
    pass


class SegmentNotFound(AccessNavError, KeyError):
    pass
