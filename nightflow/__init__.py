"""
Nightflow - Overnight Execution Flow Analytics

Statistics, clustering, risk, aggregation and regime analysis over overnight
execution observations.
"""

__version__ = "0.1.0"

from .core import Nightflow
from .data import DisplayMode, FilterCriteria, Observation, decode_payload, load_payload

__all__ = [
    "DisplayMode",
    "FilterCriteria",
    "Nightflow",
    "Observation",
    "decode_payload",
    "load_payload",
]
