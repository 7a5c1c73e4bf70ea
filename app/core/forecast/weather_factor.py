"""Weather-driven demand adjustment.

A flat tiered lookup: each dimension contributes at most one multiplier,
checked in priority order, and the product is rounded to two decimals.
"""

from __future__ import annotations

from typing import Optional

from app.core.forecast.domain import WeatherDay
from app.core.forecast.numbers import round_half_up


NEUTRAL_FACTOR = 1.0

# Temperature (degrees Celsius)
FREEZING_BELOW_C = 5
FREEZING_FACTOR = 0.70
COLD_BELOW_C = 10
COLD_FACTOR = 0.85
VERY_HOT_ABOVE_C = 30
VERY_HOT_FACTOR = 0.80
HOT_ABOVE_C = 25
HOT_FACTOR = 0.90

# Precipitation (mm per day)
HEAVY_RAIN_ABOVE_MM = 10
HEAVY_RAIN_FACTOR = 0.60
RAIN_ABOVE_MM = 5
RAIN_FACTOR = 0.75
LIGHT_RAIN_ABOVE_MM = 1
LIGHT_RAIN_FACTOR = 0.90

# Wind (km/h)
STRONG_WIND_ABOVE_KMH = 15
STRONG_WIND_FACTOR = 0.85
WIND_ABOVE_KMH = 10
WIND_FACTOR = 0.95

# WMO weather code, as (lower bound inclusive, factor), highest bound first.
WEATHER_CODE_TIERS = (
    (80, 0.70),  # showers, thunderstorms
    (60, 0.85),  # rain
    (40, 0.95),  # fog
    (20, 1.00),  # overcast
    (10, 1.05),  # partly cloudy
)
CLEAR_SKY_FACTOR = 1.10


def temperature_factor(temperature: float) -> float:
    if temperature < FREEZING_BELOW_C:
        return FREEZING_FACTOR
    if temperature < COLD_BELOW_C:
        return COLD_FACTOR
    if temperature > VERY_HOT_ABOVE_C:
        return VERY_HOT_FACTOR
    if temperature > HOT_ABOVE_C:
        return HOT_FACTOR
    return NEUTRAL_FACTOR


def precipitation_factor(precipitation: float) -> float:
    if precipitation > HEAVY_RAIN_ABOVE_MM:
        return HEAVY_RAIN_FACTOR
    if precipitation > RAIN_ABOVE_MM:
        return RAIN_FACTOR
    if precipitation > LIGHT_RAIN_ABOVE_MM:
        return LIGHT_RAIN_FACTOR
    return NEUTRAL_FACTOR


def wind_factor(wind_speed: float) -> float:
    if wind_speed > STRONG_WIND_ABOVE_KMH:
        return STRONG_WIND_FACTOR
    if wind_speed > WIND_ABOVE_KMH:
        return WIND_FACTOR
    return NEUTRAL_FACTOR


def weather_code_factor(weather_code: int) -> float:
    for lower_bound, factor in WEATHER_CODE_TIERS:
        if weather_code >= lower_bound:
            return factor
    return CLEAR_SKY_FACTOR


def calculate_weather_factor(weather: Optional[WeatherDay]) -> float:
    """Multiplicative demand factor for one day's weather; 1.0 when unknown."""

    if weather is None:
        return NEUTRAL_FACTOR

    factor = (
        temperature_factor(weather.temperature)
        * precipitation_factor(weather.precipitation)
        * wind_factor(weather.wind_speed)
        * weather_code_factor(weather.weather_code)
    )
    return round_half_up(factor, 2)
