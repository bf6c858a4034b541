#!/usr/bin/env python3
"""
Fetch the latest METAR for a station from aviationweather.gov and decode it.

Usage:
    python weather.py KJFK
    python weather.py --raw "EGLL 251650Z VRB03KT CAVOK 18/09 Q1015"
    python weather.py EGLL --json

Settings are read from the environment:
    METAR_API_URL        data API endpoint (default aviationweather.gov)
    METAR_FETCH_TIMEOUT  request timeout in seconds (default 10)
    METAR_USER_AGENT     User-Agent header sent with requests
    LOG_LEVEL            logging level for the command line (default INFO)
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

import requests

from metar_decoder import Report, decode


logger = logging.getLogger(__name__)


def env_number(name: str, default, cast=float):
    """Read a numeric setting, falling back to the default when unset or malformed."""
    value = os.environ.get(name, '').strip()
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        logger.warning("Ignoring %s=%r, not a number; using %s", name, value, default)
        return default


def log_level(value: Optional[str], default: str = 'INFO') -> str:
    """Normalize a logging level name, falling back to the default for unknown names."""
    level = (value or '').strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    if level:
        logger.warning("Ignoring unknown LOG_LEVEL %r; using %s", value, default)
    return default


METAR_API_URL = os.environ.get('METAR_API_URL', 'https://aviationweather.gov/api/data/metar')
FETCH_TIMEOUT = env_number('METAR_FETCH_TIMEOUT', 10.0)
USER_AGENT = os.environ.get('METAR_USER_AGENT', 'metarflow/1.0')
LOG_LEVEL = log_level(os.environ.get('LOG_LEVEL'))


class MetarFetchError(Exception):
    """Raised when no METAR could be retrieved for a station. The message is the bare cause."""


class InvalidStationError(ValueError):
    """Raised for station codes that are not 4 characters long."""


def normalize_icao(value: str) -> str:
    """Trim and uppercase a station code, rejecting anything but 4 characters."""
    icao = (value or '').strip().upper()
    if len(icao) != 4:
        raise InvalidStationError("ICAO codes should be 4 characters (e.g., KJFK, EGLL, YSSY)")
    return icao


def fetch_metar(icao: str, session: Optional[requests.Session] = None) -> str:
    """
    Fetch the raw METAR text for one station.

    Pass a requests.Session to reuse connections across lookups.
    """
    http = session or requests
    params = {'ids': icao, 'format': 'raw'}
    headers = {'User-Agent': USER_AGENT}

    logger.info("Fetching METAR for %s", icao)
    try:
        resp = http.get(METAR_API_URL, params=params, headers=headers, timeout=FETCH_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("METAR request for %s failed: %s", icao, e)
        raise MetarFetchError(str(e)) from e

    if resp.status_code != 200:
        logger.warning("METAR request for %s returned HTTP %s", icao, resp.status_code)
        raise MetarFetchError(f"Failed to fetch data: {resp.status_code}")

    text = resp.text.strip()
    if not text:
        raise MetarFetchError(f"No METAR data found for airport {icao}")
    return text


def get_report(icao: str, session: Optional[requests.Session] = None) -> Report:
    """Validate the station code, fetch its METAR and decode it."""
    icao = normalize_icao(icao)
    return decode(fetch_metar(icao, session=session), icao)


SUMMARY_FIELDS = [
    ('Airport', 'station'),
    ('Date/Time', 'date_time'),
    ('Wind', 'wind'),
    ('Visibility', 'visibility'),
    ('Weather', 'weather'),
    ('Clouds', 'clouds'),
    ('Temperature', 'temperature'),
    ('Dewpoint', 'dewpoint'),
    ('Altimeter', 'altimeter'),
    ('Remarks', 'remarks'),
]


def print_summary(report: Report) -> None:
    print("--- METAR summary ---")
    for label, attr in SUMMARY_FIELDS:
        default = 'None' if attr == 'remarks' else 'N/A'
        print(f"{label + ':':<13} {getattr(report, attr) or default}")
    if report.altimeter_default_unit == 'inches':
        print(f"{'':<13} ({report.altimeter_hpa} hectopascals)")
    elif report.altimeter_default_unit == 'hpa':
        print(f"{'':<13} ({report.altimeter_inches:.2f} inches of mercury)")
    print(f"Raw: {report.raw}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch and decode the latest METAR for a station")
    p.add_argument('station', nargs='?', help="ICAO station code (e.g. KJFK)")
    p.add_argument('--raw', help="decode this report text instead of fetching one")
    p.add_argument('--json', action='store_true', help="print the decoded report as JSON")
    args = p.parse_args(argv)
    if not args.station and not args.raw:
        p.error("a station code or --raw is required")
    return args


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')

    try:
        if args.raw:
            hint = (args.station or '').strip().upper()
            report = decode(args.raw, hint)
        else:
            report = get_report(args.station)
    except (InvalidStationError, MetarFetchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_summary(report)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
