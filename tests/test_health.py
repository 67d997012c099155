import pytest
import requests

from kwok_e2e.errors import ExternalInvocationFailure, UnexpectedOutput
from kwok_e2e.health import BodyContains, BodyEquals, HttpHealthProbe, MinOccurrences, StatusIs
from kwok_e2e.retry import Deadline

from conftest import targets_body

URL = "http://127.0.0.1:10247/healthz"


@pytest.mark.parametrize("body, expected", [
    ("ok", True),
    ("not ok", False),
    ("OK", False),
    ("ok\n", False),
    ("", False),
])
def test_body_equals_is_exact(body, expected):
    assert BodyEquals("ok").check(200, body) is expected


@pytest.mark.parametrize("healthy, expected", [(0, False), (5, False), (6, True), (9, True)])
def test_min_occurrences(healthy, expected):
    assert MinOccurrences('"health":"up"', 6).check(200, targets_body(healthy)) is expected


def test_status_is_ignores_body():
    assert StatusIs(200).check(200, "")
    assert not StatusIs(200).check(503, "ok")


def test_body_contains():
    assert BodyContains('"health"').check(200, '{"health":"true"}')
    assert not BodyContains('"health"').check(200, "healthy")


def test_probe_passes_and_releases_response(session):
    session.script(URL, (200, "ok"))
    HttpHealthProbe("controller", URL, BodyEquals("ok"), session)()
    assert session.responses[0].closed


def test_probe_mismatch_carries_diagnostics(session):
    session.script(URL, (200, "not ok"))
    probe = HttpHealthProbe("controller", URL, BodyEquals("ok"), session)
    with pytest.raises(UnexpectedOutput) as exc_info:
        probe()
    err = exc_info.value
    assert err.detail == "not ok"
    assert err.hint == f"curl -s {URL}"
    assert "controller is not healthy" in str(err)
    assert session.responses[0].closed


def test_probe_transport_error(session):
    session.script(URL, requests.ConnectionError("connection refused"))
    with pytest.raises(ExternalInvocationFailure) as exc_info:
        HttpHealthProbe("controller", URL, BodyEquals("ok"), session)()
    assert "connection refused" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


def test_probe_passes_tls_and_timeout_settings(session):
    session.script(URL, (200, "ok"))
    HttpHealthProbe("controller", URL, BodyEquals("ok"), session, timeout=7, verify_tls=True)()
    assert session.requests[0]["timeout"] == 7
    assert session.requests[0]["verify"] is True


def test_probe_timeout_clamped_by_deadline(session):
    session.script(URL, (200, "ok"))
    deadline = Deadline(seconds=2, clock=lambda: 0.0)
    HttpHealthProbe("controller", URL, BodyEquals("ok"), session, timeout=10, deadline=deadline)()
    assert session.requests[0]["timeout"] == 2
