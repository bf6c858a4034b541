"""
METAR decoder

Turns a raw METAR/SPECI report into a Report of human-readable strings.

The grammar is irregular: groups are optional, vary by station and are
sometimes malformed. The decoder walks the whitespace-separated groups once,
front to back, and each section decoder takes the group list plus the
current index and returns the next index and what it found. A section that
does not recognize its group leaves the index where it was and returns an
empty value, so a bad group never stops the rest of the report from being
decoded.

Example:
    >>> decode("KJFK 251651Z 27015G25KT 10SM FEW250 22/12 A3012 RMK AO2", "KJFK").wind
    '270 degrees (W) at 15 knots, gusting to 25 knots'
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Optional

from units import (
    celsius_to_fahrenheit,
    format_number,
    hpa_to_inches,
    inches_to_hpa,
    meters_to_visibility,
)

logger = logging.getLogger(__name__)


REPORT_TYPES = ('METAR', 'SPECI')
MODIFIERS = ('COR', 'AUTO', 'NIL')

# Upper bound (inclusive) of each cardinal sector, in degrees
CARDINAL_SECTORS = [
    (22, 'N'),
    (67, 'NE'),
    (112, 'E'),
    (157, 'SE'),
    (202, 'S'),
    (247, 'SW'),
    (292, 'W'),
    (337, 'NW'),
    (360, 'N'),
]

# Intensity / proximity prefixes
INTENSITIES = [
    ('-', 'Light '),
    ('+', 'Heavy '),
    ('VC', 'In vicinity '),
]

DESCRIPTORS = {
    'MI': 'Shallow ',
    'BC': 'Patches ',
    'DR': 'Low drifting ',
    'BL': 'Blowing ',
    'SH': 'Showers ',
    'TS': 'Thunderstorm ',
    'FZ': 'Freezing ',
    'PR': 'Partial ',
}

PHENOMENA = {
    # Precipitation
    'DZ': 'drizzle',
    'RA': 'rain',
    'SN': 'snow',
    'SG': 'snow grains',
    'IC': 'ice crystals',
    'GR': 'hail',
    'PL': 'ice pellets',
    'GS': 'small hail/snow pellets',
    'UP': 'unknown precipitation',
    # Obscuration
    'HZ': 'haze',
    'FU': 'smoke',
    'FG': 'fog',
    'BR': 'mist',
    'VA': 'volcanic ash',
    'DU': 'widespread dust',
    'SA': 'sand',
    'PY': 'spray',
    # Other
    'SQ': 'squalls',
    'FC': 'funnel cloud',
    'PO': 'dust/sand whirls',
    'SS': 'sandstorm',
    'DS': 'dust storm',
}

WEATHER_CODES = tuple(PHENOMENA) + tuple(DESCRIPTORS)

# Groups that can never be present weather even if they contain a code
NON_WEATHER_PREFIXES = ('SKC', 'CLR', 'FEW', 'SCT', 'BKN', 'OVC', 'VV', 'NSC', 'NCD', 'A', 'Q')

# Present weather stops as soon as the sky condition starts
CLOUD_PREFIXES = ('SKC', 'CLR', 'FEW', 'SCT', 'BKN', 'OVC', 'VV')

SKY_CONDITIONS = {
    'SKC': 'Sky clear',
    'CLR': 'Clear below 12,000 feet',
    'NSC': 'No significant cloud',
    'NCD': 'No cloud detected',
}

CLOUD_COVERAGE = {
    'FEW': 'Few',
    'SCT': 'Scattered',
    'BKN': 'Broken',
    'OVC': 'Overcast',
}

CLOUD_TYPES = [
    ('CB', ' (cumulonimbus)'),
    ('TCU', ' (towering cumulus)'),
]

# Groups that belong to temperature/altimeter/remarks, left for decode_trailer
TRAILER_PREFIXES = ('A', 'Q', 'T', 'M', 'RMK', 'NOSIG')

TEN_KM_OR_MORE = '10 kilometers or more'
CAVOK_CLOUDS = 'No clouds below 5,000 feet'
CAVOK_WEATHER = 'None significant'
NO_WEATHER = 'None'
NO_CLOUD_INFO = 'No cloud information'
MAINTENANCE_NOTE = 'Maintenance needed on automated station'

DIGITS_RE = re.compile(r'[0-9]+')
SIGNED_RE = re.compile(r'[+-]?[0-9]+')
NUMBER_RE = re.compile(r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)')
WIND_VARIATION_RE = re.compile(r'([0-9]{3})V([0-9]{3})')
# Standard remarks temperature group, e.g. T01720117 -> 17.2 / 11.7
T_GROUP_RE = re.compile(r'T([01])([0-9]{3})([01])([0-9]{3})')


@dataclass(frozen=True)
class Report:
    """Decoded METAR. Empty strings and None mean the section was absent."""
    station: str = ''
    report_type: str = ''
    modifiers: tuple[str, ...] = ()
    date_time: str = ''
    zulu_day: Optional[int] = None
    zulu_hour: Optional[int] = None
    zulu_minute: Optional[int] = None
    wind: str = ''
    visibility: str = ''
    weather: str = ''
    clouds: str = ''
    temperature: str = ''
    dewpoint: str = ''
    altimeter: str = ''
    altimeter_hpa: Optional[int] = None
    altimeter_inches: Optional[float] = None
    altimeter_default_unit: str = ''
    remarks: str = ''
    raw: str = ''

    def to_dict(self) -> dict:
        data = asdict(self)
        data['modifiers'] = list(self.modifiers)
        return data


@dataclass(frozen=True)
class Altimeter:
    text: str
    hpa: int
    inches: float
    default_unit: str


@dataclass(frozen=True)
class Trailer:
    """Everything after the sky condition: temperature, altimeter and remarks."""
    temperature: str = ''
    dewpoint: str = ''
    altimeter: Optional[Altimeter] = None
    remarks: str = ''


# ==============================
# Primitive parsers
# ==============================

def _to_int(text: str) -> Optional[int]:
    if DIGITS_RE.fullmatch(text):
        return int(text)
    return None


def _to_signed(text: str) -> Optional[int]:
    if SIGNED_RE.fullmatch(text):
        return int(text)
    return None


def _to_float(text: str) -> Optional[float]:
    if NUMBER_RE.fullmatch(text):
        return float(text)
    return None


def _two_digits(text: str) -> Optional[int]:
    if len(text) != 2:
        return None
    return _to_int(text)


def tokenize(raw: str) -> tuple[str, ...]:
    """Split a report into its groups on any run of whitespace."""
    return tuple(raw.split())


def degrees_to_cardinal(degrees: int) -> str:
    """Map a wind direction to one of 8 cardinal labels, '' when out of range."""
    if degrees < 0:
        return ''
    for upper, label in CARDINAL_SECTORS:
        if degrees <= upper:
            return label
    return ''


def is_weather_code(code: str) -> bool:
    """
    True if the group contains a weather phenomenon or descriptor code.

    This is a substring test, not a parse: a group like TEMPO matches
    because it contains PO.
    """
    if code.startswith(NON_WEATHER_PREFIXES) or '/' in code:
        return False
    return any(wx in code for wx in WEATHER_CODES)


def is_weather_group(token: str) -> bool:
    return token.startswith(('-', '+', 'VC')) or is_weather_code(token)


def decode_weather(code: str) -> str:
    """
    Decode a present weather group such as -SN or +TSRA into text
    ("Light snow", "Heavy Thunderstorm rain").

    Grammar: [intensity] [descriptor]* phenomenon+. Decoding stops at the
    first unknown pair and returns whatever was decoded up to there.
    """
    result = ''
    pos = 0

    for prefix, text in INTENSITIES:
        if code.startswith(prefix):
            result += text
            pos = len(prefix)
            break

    while code[pos:pos + 2] in DESCRIPTORS:
        result += DESCRIPTORS[code[pos:pos + 2]]
        pos += 2

    while code[pos:pos + 2] in PHENOMENA:
        result += PHENOMENA[code[pos:pos + 2]]
        pos += 2

    return result.strip()


def _format_temperature(celsius: int) -> str:
    return f"{celsius}°C ({celsius_to_fahrenheit(celsius)}°F)"


def _parse_gust(token: str) -> Optional[int]:
    pos = token.find('G')
    if pos < 0:
        return None
    return _two_digits(token[pos + 1:pos + 3])


# ==============================
# Section decoders
# ==============================

def decode_report_type(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    if index < len(tokens) and tokens[index] in REPORT_TYPES:
        return index + 1, tokens[index]
    return index, ''


def decode_station(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    if index < len(tokens):
        return index + 1, tokens[index]
    return index, ''


def decode_observation_time(tokens: tuple[str, ...], index: int) -> tuple[int, Optional[tuple[int, int, int]]]:
    """
    Day/hour/minute from a DDHHMMZ group.

    A group that looks like a time but does not parse is left in place.
    """
    if index >= len(tokens):
        return index, None
    token = tokens[index]
    if len(token) != 7 or not token.endswith('Z'):
        return index, None

    day = _two_digits(token[0:2])
    hour = _two_digits(token[2:4])
    minute = _two_digits(token[4:6])
    if day is None or hour is None or minute is None:
        return index, None
    return index + 1, (day, hour, minute)


def decode_modifiers(tokens: tuple[str, ...], index: int) -> tuple[int, tuple[str, ...]]:
    start = index
    while index < len(tokens) and tokens[index] in MODIFIERS:
        index += 1
    return index, tokens[start:index]


def decode_wind(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    """
    Wind group: VRBssKT or dddssKT, both with an optional Ggg gust.
    A directional wind may be followed by a dddVddd variation group.
    """
    if index >= len(tokens):
        return index, ''
    token = tokens[index]

    if token.startswith('VRB'):
        speed = _two_digits(token[3:5])
        if speed is None:
            return index, ''
        wind = f"Variable at {speed} knots"
        gust = _parse_gust(token)
        if gust is not None:
            wind += f", gusting to {gust} knots"
        return index + 1, wind

    if len(token) >= 7 and token.endswith('KT'):
        direction = _to_int(token[0:3])
        speed = _two_digits(token[3:5])
        if direction is None or speed is None:
            return index, ''

        cardinal = degrees_to_cardinal(direction)
        if cardinal:
            wind = f"{direction} degrees ({cardinal}) at {speed} knots"
        else:
            wind = f"{direction} degrees at {speed} knots"
        gust = _parse_gust(token)
        if gust is not None:
            wind += f", gusting to {gust} knots"
        index += 1

        # e.g. 200V250: direction varies between 200 and 250 degrees
        if index < len(tokens):
            match = WIND_VARIATION_RE.fullmatch(tokens[index])
            if match:
                wind += f", variable between {int(match.group(1))} and {int(match.group(2))} degrees"
                index += 1
        return index, wind

    return index, ''


def decode_cavok(tokens: tuple[str, ...], index: int) -> tuple[int, bool]:
    if index < len(tokens) and tokens[index] == 'CAVOK':
        return index + 1, True
    return index, False


def decode_visibility(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    """
    Prevailing visibility: 9999, NNSM (statute miles) or NNNN (meters).

    A statute mile group whose number does not parse (1/4SM) is still
    consumed, leaving visibility empty.
    """
    if index >= len(tokens):
        return index, ''
    token = tokens[index]

    if token == '9999':
        return index + 1, TEN_KM_OR_MORE
    if token.endswith('SM'):
        miles = _to_float(token[:-2])
        if miles is None:
            return index + 1, ''
        return index + 1, f"{format_number(miles)} statute miles"

    meters = _to_int(token)
    if meters is not None:
        return index + 1, meters_to_visibility(meters)
    return index, ''


def decode_present_weather(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    descriptions = []
    while index < len(tokens):
        token = tokens[index]
        if token.startswith(CLOUD_PREFIXES) or not is_weather_group(token):
            break
        description = decode_weather(token)
        if description:
            descriptions.append(description)
        index += 1
    return index, ', '.join(descriptions) or NO_WEATHER


def _decode_cloud_layer(token: str) -> str:
    # e.g. BKN030CB: coverage, height in hundreds of feet, optional type
    height = _to_int(token[3:6]) if len(token) >= 6 else None
    if height is None:
        return ''
    cloud_type = next((text for suffix, text in CLOUD_TYPES if token.endswith(suffix)), '')
    return f"{CLOUD_COVERAGE[token[:3]]} at {height * 100} feet{cloud_type}"


def decode_clouds(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    layers = []
    while index < len(tokens):
        token = tokens[index]

        sky = next((text for code, text in SKY_CONDITIONS.items() if token.startswith(code)), None)
        if sky:
            layers.append(sky)
            index += 1
            break

        if token.startswith('VV'):
            if len(token) >= 5:
                height = _to_int(token[2:5])
                if height is not None:
                    layers.append(f"Sky obscured, vertical visibility {height * 100} feet")
            else:
                layers.append('Sky obscured')
            index += 1
        elif token[:3] in CLOUD_COVERAGE:
            layer = _decode_cloud_layer(token)
            if layer:
                layers.append(layer)
            index += 1
        elif token.startswith(TRAILER_PREFIXES) or ('/' in token and len(token) <= 7):
            break
        else:
            logger.debug("Skipping unrecognized sky group %r", token)
            index += 1

    return index, ', '.join(layers) or NO_CLOUD_INFO


def decode_temperature_group(token: str) -> Optional[tuple[str, str]]:
    """
    Temperature/dewpoint such as 22/12 or M05/M10 (M = minus).
    Returns the formatted (temperature, dewpoint) pair or None.
    """
    parts = token.split('/')
    if len(parts) != 2:
        return None
    temp_text, dew_text = parts

    temp_sign = 1
    if temp_text.startswith('M'):
        temp_sign = -1
        temp_text = temp_text[1:]
    elif temp_text.startswith('T'):
        temp_text = temp_text[1:]

    dew_sign = 1
    if dew_text.startswith('M'):
        dew_sign = -1
        dew_text = dew_text[1:]

    temp_c = _to_signed(temp_text)
    dew_c = _to_signed(dew_text)
    if temp_c is None or dew_c is None:
        return None
    return _format_temperature(temp_sign * temp_c), _format_temperature(dew_sign * dew_c)


def decode_altimeter_group(token: str) -> Optional[Altimeter]:
    """Altimeter setting: Annnn in hundredths of inHg, Qnnnn in hPa."""
    if len(token) != 5:
        return None
    value = _to_int(token[1:])
    if value is None:
        return None

    if token.startswith('A'):
        inches = value / 100
        return Altimeter(
            text=f"{inches:.2f} inches of mercury",
            hpa=inches_to_hpa(inches),
            inches=inches,
            default_unit='inches',
        )
    if token.startswith('Q'):
        return Altimeter(
            text=f"{value} hectopascals",
            hpa=value,
            inches=hpa_to_inches(value),
            default_unit='hpa',
        )
    return None


def _precise_temperature(temp_tenths: int, dew_tenths: int) -> str:
    return f"Precise temperature: {temp_tenths / 10:.1f}°C / {dew_tenths / 10:.1f}°C"


def decode_remark(token: str) -> str:
    """Decode one remarks group, '' when it is not one we know."""
    if token.startswith('AO'):
        return 'Automated station'

    if token.startswith('RAE'):
        minutes = _to_int(token[3:])
        if minutes is None:
            return ''
        return f"Rain ended at {minutes} minutes past the hour"

    if token.startswith('P') and len(token) > 1:
        # hourly precipitation in hundredths of an inch
        amount = _to_float(token[1:])
        if amount is None:
            return ''
        if amount == 0:
            return 'No precipitation in past hour'
        return f"Precipitation: {format_number(amount / 100)} inches"

    if token.startswith('T') and len(token) > 1:
        if '/' in token:
            parts = token[1:].split('/')
            if len(parts) != 2:
                return ''
            temp, dew = _to_signed(parts[0]), _to_signed(parts[1])
            if temp is None or dew is None:
                return ''
            return _precise_temperature(temp, dew)

        match = T_GROUP_RE.fullmatch(token)
        if match:
            temp = int(match.group(2)) * (-1 if match.group(1) == '1' else 1)
            dew = int(match.group(4)) * (-1 if match.group(3) == '1' else 1)
            return _precise_temperature(temp, dew)

    return ''


def decode_remarks(tokens: tuple[str, ...], index: int) -> tuple[int, str]:
    """Decode the groups following RMK, up to a '$' or the end of the report."""
    fragments = []
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if token == '$':
            # the maintenance flag is reported, not silently dropped; it still ends remarks
            fragments.append(MAINTENANCE_NOTE)
            break
        fragment = decode_remark(token)
        if fragment:
            fragments.append(fragment)
    return index, '. '.join(fragments)


def decode_trailer(tokens: tuple[str, ...], index: int) -> tuple[int, Trailer]:
    """
    Temperature/dewpoint, altimeter and remarks, in whatever order they come.
    Remarks are always last: decoding ends once they have been read.
    """
    temperature = dewpoint = remarks = ''
    altimeter = None

    while index < len(tokens):
        token = tokens[index]

        if '/' in token and len(token) <= 7:
            pair = decode_temperature_group(token)
            if pair:
                temperature, dewpoint = pair
            index += 1
        elif token.startswith(('A', 'Q')) and len(token) == 5:
            parsed = decode_altimeter_group(token)
            if parsed:
                altimeter = parsed
            index += 1
        elif token.startswith('RMK'):
            index, remarks = decode_remarks(tokens, index + 1)
            break
        else:
            # NOSIG, $, trend groups, runway visual range...
            logger.debug("Skipping unrecognized group %r", token)
            index += 1

    return index, Trailer(
        temperature=temperature,
        dewpoint=dewpoint,
        altimeter=altimeter,
        remarks=remarks,
    )


# ==============================
# Orchestrator
# ==============================

def decode(raw_report: str, station_hint: str) -> Report:
    """
    Decode a raw METAR into a Report.

    Never raises: groups that do not fit are skipped and the matching
    fields stay empty. station_hint is used when the report has no station.
    """
    tokens = tokenize(raw_report)
    if not tokens:
        return Report(station=station_hint, raw=raw_report)

    index, report_type = decode_report_type(tokens, 0)
    index, station = decode_station(tokens, index)
    index, zulu = decode_observation_time(tokens, index)
    index, modifiers = decode_modifiers(tokens, index)
    index, wind = decode_wind(tokens, index)
    index, cavok = decode_cavok(tokens, index)

    if cavok:
        # CAVOK replaces visibility, weather and clouds in one group
        visibility, weather, clouds = TEN_KM_OR_MORE, CAVOK_WEATHER, CAVOK_CLOUDS
    else:
        index, visibility = decode_visibility(tokens, index)
        index, weather = decode_present_weather(tokens, index)
        index, clouds = decode_clouds(tokens, index)

    index, trailer = decode_trailer(tokens, index)
    if index < len(tokens):
        logger.debug("Ignoring %d group(s) after remarks", len(tokens) - index)

    date_time = ''
    day = hour = minute = None
    if zulu:
        day, hour, minute = zulu
        date_time = f"Day {day}, {hour}:{minute:02}Z"

    altimeter = trailer.altimeter
    return Report(
        station=station or station_hint,
        report_type=report_type,
        modifiers=modifiers,
        date_time=date_time,
        zulu_day=day,
        zulu_hour=hour,
        zulu_minute=minute,
        wind=wind,
        visibility=visibility,
        weather=weather,
        clouds=clouds,
        temperature=trailer.temperature,
        dewpoint=trailer.dewpoint,
        altimeter=altimeter.text if altimeter else '',
        altimeter_hpa=altimeter.hpa if altimeter else None,
        altimeter_inches=altimeter.inches if altimeter else None,
        altimeter_default_unit=altimeter.default_unit if altimeter else '',
        remarks=trailer.remarks,
        raw=raw_report,
    )
