"""Tests for the METAR fetch service and command line."""

import json

import pytest
import requests

import weather
from weather import InvalidStationError, MetarFetchError, fetch_metar, get_report, main, normalize_icao


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code


class FakeSession:
    """Stands in for requests.Session and records the calls made."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def test_normalize_icao():
    assert normalize_icao(" kjfk ") == "KJFK"
    assert normalize_icao("egll") == "EGLL"


@pytest.mark.parametrize("value", ["", "JFK", "KJFKX", "   ", None])
def test_normalize_icao_rejects_bad_length(value):
    with pytest.raises(InvalidStationError, match="4 characters"):
        normalize_icao(value)


def test_fetch_metar_returns_trimmed_text():
    session = FakeSession(FakeResponse("EGLL 251650Z VRB03KT CAVOK 18/09 Q1015\n"))
    assert fetch_metar("EGLL", session=session) == "EGLL 251650Z VRB03KT CAVOK 18/09 Q1015"

    url, kwargs = session.calls[0]
    assert url == weather.METAR_API_URL
    assert kwargs["params"] == {"ids": "EGLL", "format": "raw"}
    assert kwargs["timeout"] == weather.FETCH_TIMEOUT


def test_fetch_metar_http_error():
    session = FakeSession(FakeResponse("Server Error", status_code=500))
    with pytest.raises(MetarFetchError, match="Failed to fetch data: 500"):
        fetch_metar("KJFK", session=session)


def test_fetch_metar_empty_body():
    session = FakeSession(FakeResponse("   \n"))
    with pytest.raises(MetarFetchError, match="No METAR data found for airport ZZZZ"):
        fetch_metar("ZZZZ", session=session)


def test_fetch_metar_transport_error():
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    with pytest.raises(MetarFetchError) as excinfo:
        fetch_metar("KJFK", session=session)
    assert str(excinfo.value) == "connection refused"
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


@pytest.mark.parametrize("value, expected", [
    (None, 10.0),
    ("", 10.0),
    ("2.5", 2.5),
    ("soon", 10.0),
])
def test_env_number_falls_back_on_bad_values(monkeypatch, value, expected):
    if value is None:
        monkeypatch.delenv("METAR_FETCH_TIMEOUT", raising=False)
    else:
        monkeypatch.setenv("METAR_FETCH_TIMEOUT", value)
    assert weather.env_number("METAR_FETCH_TIMEOUT", 10.0) == expected


def test_env_number_int_cast(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert weather.env_number("PORT", 3000, cast=int) == 8080
    monkeypatch.setenv("PORT", "80.5")
    assert weather.env_number("PORT", 3000, cast=int) == 3000


@pytest.mark.parametrize("value, expected", [
    (None, "INFO"),
    ("debug", "DEBUG"),
    (" warning ", "WARNING"),
    ("LOUD", "INFO"),
])
def test_log_level_falls_back_on_unknown_names(value, expected):
    assert weather.log_level(value) == expected


def test_fetch_metar_uses_requests_without_session(monkeypatch):
    session = FakeSession(FakeResponse("KJFK 251651Z 27015KT 10SM CLR 22/12 A3012"))
    monkeypatch.setattr(weather.requests, "get", session.get)
    assert fetch_metar("KJFK").startswith("KJFK 251651Z")
    assert len(session.calls) == 1


def test_get_report_decodes_fetched_text():
    session = FakeSession(FakeResponse("KJFK 251651Z 27015G25KT 10SM FEW250 22/12 A3012 RMK AO2"))
    report = get_report("kjfk", session=session)
    assert report.station == "KJFK"
    assert report.wind == "270 degrees (W) at 15 knots, gusting to 25 knots"


def test_main_decodes_raw_text(capsys):
    assert main(["--raw", "EGLL 251650Z VRB03KT CAVOK 18/09 Q1015"]) == 0
    out = capsys.readouterr().out
    assert "Airport:      EGLL" in out
    assert "Wind:         Variable at 3 knots" in out
    assert "Remarks:      None" in out
    assert "(29.97 inches of mercury)" in out


def test_main_json_output(capsys):
    assert main(["--json", "--raw", "KJFK 251651Z 27015KT 10SM CLR 22/12 A3012"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["station"] == "KJFK"
    assert data["temperature"] == "22°C (71°F)"
    assert data["altimeter_default_unit"] == "inches"


def test_main_reports_fetch_errors(monkeypatch, capsys):
    def failing_fetch(icao, session=None):
        raise MetarFetchError(f"No METAR data found for airport {icao}")

    monkeypatch.setattr(weather, "fetch_metar", failing_fetch)
    assert main(["ZZZZ"]) == 1
    assert "No METAR data found for airport ZZZZ" in capsys.readouterr().err


def test_main_rejects_bad_station(capsys):
    assert main(["JFK"]) == 1
    assert "4 characters" in capsys.readouterr().err


def test_main_requires_station_or_raw():
    with pytest.raises(SystemExit):
        main([])
