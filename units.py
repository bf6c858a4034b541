"""
Unit conversions used when formatting decoded METAR values.

Temperatures come in whole degrees Celsius, altimeter settings in either
hundredths of inches of mercury (A group) or hectopascals (Q group), and
visibility in meters or statute miles.
"""

# 1 inHg in hPa
HPA_PER_INCH = 33.8639


def celsius_to_fahrenheit(celsius: int) -> int:
    """Convert whole degrees Celsius to Fahrenheit, truncating toward zero."""
    # int() truncates toward zero, floor division would round -1.8 down to -2
    return int(celsius * 9 / 5) + 32


def inches_to_hpa(inches: float) -> int:
    """Convert inches of mercury to whole hectopascals."""
    return round(inches * HPA_PER_INCH)


def hpa_to_inches(hpa: int) -> float:
    """Convert hectopascals to inches of mercury."""
    return hpa / HPA_PER_INCH


def meters_to_visibility(meters: int) -> str:
    """Format a visibility in meters, switching to whole kilometers from 1000 m."""
    if meters >= 1000:
        return f"{meters // 1000} kilometers"
    return f"{meters} meters"


def format_number(value: float) -> str:
    """
    Format a float for display: 10.0 -> "10", 0.15 -> "0.15".
    """
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
