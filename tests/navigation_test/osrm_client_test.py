from unittest import mock

import pytest
import requests

from accessnav.router.errors import (
    AddressNotFound,
    GeocodingUnavailable,
    NoRouteFound,
    RoutingUnavailable,
)
from accessnav.router.geocoder import NominatimGeocoder
from accessnav.router.models import GeoPoint
from accessnav.router.nav_config import NavConfig
from accessnav.router.osrm_client import OSRMClient, format_coordinates, parse_route

from fakes import DEST, START

OK_BODY = {
    "code": "Ok",
    "routes": [{
        "distance": 256.4,
        "duration": 190.2,
        "geometry": {"type": "LineString", "coordinates": [[23.7275, 37.9838], [23.7300, 37.9850]]},
        "legs": [{
            "steps": [
                {
                    "distance": 120.0, "duration": 90.0, "name": "Ermou",
                    "maneuver": {"type": "depart", "location": [23.7275, 37.9838]},
                },
                {
                    "distance": 136.4, "duration": 100.2, "name": "Mitropoleos",
                    "maneuver": {"type": "turn", "modifier": "left", "location": [23.7288, 37.9843]},
                },
            ],
        }],
    }],
}


def response(body, status=200):
    r = mock.Mock()
    r.ok = status < 400
    r.status_code = status
    r.json.return_value = body
    return r


def client_with(*results, **config):
    session = mock.Mock()
    session.headers = {}
    session.get.side_effect = list(results)
    return OSRMClient(NavConfig(**config), session=session), session


def test_format_coordinates_is_lng_lat():
    assert format_coordinates([START, DEST]) == "23.7275,37.9838;23.73,37.985"


def test_parse_route():
    result = parse_route(OK_BODY)
    assert result.path == (START, DEST)
    assert result.distance_m == 256.4
    assert [s.maneuver_type for s in result.steps] == ["depart", "turn"]
    assert result.steps[1].modifier == "left"
    assert result.steps[1].name == "Mitropoleos"
    assert result.steps[1].location == GeoPoint(37.9843, 23.7288)


def test_parse_route_without_routes():
    with pytest.raises(NoRouteFound):
        parse_route({"code": "Ok", "routes": []})
    with pytest.raises(NoRouteFound):
        parse_route({"code": "NoRoute", "message": "Impossible route"})
    with pytest.raises(RoutingUnavailable):
        parse_route({"code": "InvalidQuery", "message": "bad"})


def test_route_request_shape():
    client, session = client_with(response(OK_BODY))
    client.route([START, DEST], "car")

    url = session.get.call_args.args[0]
    kwargs = session.get.call_args.kwargs
    assert url == "http://router.project-osrm.org/route/v1/car/23.7275,37.9838;23.73,37.985"
    assert kwargs["params"]["steps"] == "true"
    assert kwargs["params"]["geometries"] == "geojson"
    assert kwargs["timeout"] == 10.0


def test_route_needs_two_waypoints():
    client, _ = client_with()
    with pytest.raises(ValueError):
        client.route([START])


def test_timeout_is_retried_once():
    client, session = client_with(requests.Timeout("slow"), response(OK_BODY))
    result = client.route([START, DEST])
    assert result.distance_m == 256.4
    assert session.get.call_count == 2


def test_second_timeout_gives_up():
    client, session = client_with(requests.Timeout("slow"), requests.Timeout("slow"), response(OK_BODY))
    with pytest.raises(RoutingUnavailable):
        client.route([START, DEST])
    assert session.get.call_count == 2


def test_connection_error_is_not_retried():
    client, session = client_with(requests.ConnectionError("down"), response(OK_BODY))
    with pytest.raises(RoutingUnavailable):
        client.route([START, DEST])
    assert session.get.call_count == 1


def test_no_route_with_error_status():
    client, _ = client_with(response({"code": "NoRoute", "message": "Impossible route"}, status=400))
    with pytest.raises(NoRouteFound):
        client.route([START, DEST])


def test_server_error():
    client, _ = client_with(response({"code": "Error", "message": "boom"}, status=500))
    with pytest.raises(RoutingUnavailable):
        client.route([START, DEST])


def test_non_json_body():
    bad = response(None, status=502)
    bad.json.side_effect = ValueError("not json")
    client, _ = client_with(bad)
    with pytest.raises(RoutingUnavailable):
        client.route([START, DEST])


# ---------------------------------------------------------------------------
# Geocoder
# ---------------------------------------------------------------------------

def geocoder_with(result):
    session = mock.Mock()
    session.headers = {}
    if isinstance(result, Exception):
        session.get.side_effect = result
    else:
        session.get.return_value = result
    return NominatimGeocoder(NavConfig(), session=session), session


def test_geocode_first_match():
    r = response([{"lat": "37.9755", "lon": "23.7348"}, {"lat": "0", "lon": "0"}])
    geocoder, session = geocoder_with(r)
    assert geocoder.geocode("Syntagma Square, Athens") == GeoPoint(37.9755, 23.7348)
    assert session.get.call_args.kwargs["params"]["q"] == "Syntagma Square, Athens"


def test_geocode_no_match():
    geocoder, _ = geocoder_with(response([]))
    with pytest.raises(AddressNotFound):
        geocoder.geocode("Nowhere 123")


def test_geocode_empty_query():
    geocoder, session = geocoder_with(response([]))
    with pytest.raises(AddressNotFound):
        geocoder.geocode("   ")
    session.get.assert_not_called()


def test_geocode_transport_failure():
    geocoder, _ = geocoder_with(requests.ConnectionError("down"))
    with pytest.raises(GeocodingUnavailable):
        geocoder.geocode("Syntagma")


def test_geocode_timeout_is_retried_once():
    session = mock.Mock()
    session.headers = {}
    session.get.side_effect = [requests.Timeout("slow"), response([{"lat": "37.9755", "lon": "23.7348"}])]
    geocoder = NominatimGeocoder(NavConfig(), session=session)

    assert geocoder.geocode("Syntagma") == GeoPoint(37.9755, 23.7348)
    assert session.get.call_count == 2


def test_geocode_second_timeout_gives_up():
    session = mock.Mock()
    session.headers = {}
    session.get.side_effect = [requests.Timeout("slow"), requests.Timeout("slow"), response([])]
    geocoder = NominatimGeocoder(NavConfig(), session=session)

    with pytest.raises(GeocodingUnavailable):
        geocoder.geocode("Syntagma")
    assert session.get.call_count == 2
