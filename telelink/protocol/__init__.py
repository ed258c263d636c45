# protocol/__init__.py

from .codec import MetricSample, NonFiniteValueError, encode_sample, decode_record
from .framing import LineFramer

__all__ = [
    "MetricSample",
    "NonFiniteValueError",
    "encode_sample",
    "decode_record",
    "LineFramer",
]
