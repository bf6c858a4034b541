#!/usr/bin/env python3
"""
metarflow - Flask web application

Look up the current METAR for any airport and read it decoded in plain
English, from any browser.

Routes:
    / - Home page with the search form
    /metar?icao=XXXX - Decoded METAR for a station
    /api/metar?icao=XXXX - Decoded METAR as JSON
    /privacy - Privacy policy
    /metarflow.svg - Site icon

Local usage:
    python web_app.py
    Then open http://localhost:3000 in a browser
"""

import logging
import os

from flask import Flask, jsonify, render_template, request, send_from_directory

from metar_decoder import Report, decode
from weather import (
    LOG_LEVEL,
    InvalidStationError,
    MetarFetchError,
    env_number,
    fetch_metar,
    normalize_icao,
)

app = Flask(__name__)


def format_stat_value(value: str, default: str = 'N/A') -> tuple[str, str]:
    """CSS class suffix and text to show for one decoded field."""
    if not value:
        return ' empty', default
    return '', value


def altimeter_toggle(report: Report) -> dict:
    """Values the results page needs to switch altimeter units client side."""
    return {
        'hpa': str(report.altimeter_hpa) if report.altimeter_hpa is not None else 'null',
        'inches': f"{report.altimeter_inches:.2f}" if report.altimeter_inches is not None else 'null',
        'unit': report.altimeter_default_unit or 'hpa',
    }


def zulu_time(report: Report) -> dict:
    """Observation time parts for the local time toggle, 'null' when absent."""
    def _part(value):
        return str(value) if value is not None else 'null'

    return {
        'day': _part(report.zulu_day),
        'hour': _part(report.zulu_hour),
        'minute': _part(report.zulu_minute),
    }


def build_stats(report: Report) -> list[dict]:
    """Rows of the results table, in display order."""
    rows = [
        ('Date/Time', report.date_time, 'N/A', 'datetime-value'),
        ('Wind', report.wind, 'N/A', None),
        ('Visibility', report.visibility, 'N/A', None),
        ('Weather', report.weather, 'N/A', None),
        ('Clouds', report.clouds, 'N/A', None),
        ('Temperature', report.temperature, 'N/A', None),
        ('Dewpoint', report.dewpoint, 'N/A', None),
        ('Altimeter', report.altimeter, 'N/A', 'altimeter-value'),
        ('Remarks', report.remarks, 'None', None),
    ]
    stats = []
    for label, value, default, element_id in rows:
        css_class, display = format_stat_value(value, default)
        stats.append({'label': label, 'css_class': css_class, 'value': display, 'id': element_id})
    return stats


def render_error(message: str, status: int):
    return render_template('error.html', error=message), status


@app.route('/')
def index():
    """Home page with the search form."""
    return render_template('index.html')


@app.route('/privacy')
def privacy():
    return render_template('privacy.html')


@app.route('/metarflow.svg')
def favicon():
    return send_from_directory(app.static_folder, 'metarflow.svg', mimetype='image/svg+xml')


@app.route('/metar')
def metar():
    """Fetch, decode and display the METAR for the requested station."""
    try:
        icao = normalize_icao(request.args.get('icao', ''))
    except InvalidStationError as e:
        return render_error(str(e), 400)

    try:
        raw = fetch_metar(icao)
    except MetarFetchError as e:
        app.logger.warning("METAR lookup for %s failed: %s", icao, e)
        return render_error(f"Error fetching METAR: {e}", 500)

    report = decode(raw, icao)
    app.logger.info("Decoded METAR for %s", report.station)
    return render_template(
        'results.html',
        icao=icao,
        report=report,
        stats=build_stats(report),
        altimeter=altimeter_toggle(report),
        zulu=zulu_time(report),
    )


@app.route('/api/metar')
def api_metar():
    """Decoded METAR as JSON."""
    try:
        icao = normalize_icao(request.args.get('icao', ''))
    except InvalidStationError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    try:
        raw = fetch_metar(icao)
    except MetarFetchError as e:
        app.logger.warning("METAR lookup for %s failed: %s", icao, e)
        return jsonify({'status': 'error', 'message': str(e)}), 500

    return jsonify(decode(raw, icao).to_dict())


if __name__ == '__main__':
    logging.basicConfig(level=LOG_LEVEL)
    port = env_number('PORT', 3000, cast=int)
    host = os.environ.get('HOST', '0.0.0.0')
    app.run(debug=False, host=host, port=port)
