"""
WeatherInsight Filter Service

Row filters for cleaned SMHI weather observations.
Selects observation rows by timestamp, date marker or value threshold.
"""

__version__ = "0.1.0"
