# telelink/protocol/codec.py
"""
Wire codec: one metric sample <-> one line of JSON.

    {"CPU": 45.2, "MEM": 8388608.0}\n

Framing (finding the line boundaries in a byte stream) is not handled here,
see telelink.protocol.framing.
"""
from __future__ import annotations

import json
import math
from typing import Dict, Mapping, Union

from telelink.core.errors import MalformedRecordError

MetricSample = Dict[str, float]

TERMINATOR = b"\n"
ENCODING = "utf-8"

_SEPARATORS = (", ", ": ")


class NonFiniteValueError(ValueError):
    """A NaN or infinite value was handed to the encoder."""


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite constant '{name}' not allowed")


def encode_sample(sample: Mapping[str, float]) -> bytes:
    """
    Encode a sample as a single newline-terminated JSON object.

    Keys keep the mapping's iteration order, values are emitted as floats.
    Raises NonFiniteValueError for NaN/inf and TypeError for non-numeric
    values or non-string keys; nothing is produced in either case.
    """
    values: Dict[str, float] = {}
    for name, value in sample.items():
        if not isinstance(name, str):
            raise TypeError(f"Metric name must be str, got {type(name).__name__}")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Metric '{name}' must be numeric, got {type(value).__name__}")
        fv = float(value)
        if not math.isfinite(fv):
            raise NonFiniteValueError(f"Metric '{name}' is not finite: {value!r}")
        values[name] = fv

    text = json.dumps(values, separators=_SEPARATORS, allow_nan=False)
    return text.encode(ENCODING) + TERMINATOR


def decode_record(line: Union[bytes, bytearray, str]) -> MetricSample:
    """
    Decode one line (with or without its terminator) into a sample.

    Blank lines decode to an empty sample. Anything that is not a flat JSON
    object of finite numbers raises MalformedRecordError.
    """
    if isinstance(line, (bytes, bytearray)):
        try:
            text = bytes(line).decode(ENCODING)
        except UnicodeDecodeError as e:
            raise MalformedRecordError(
                "Record is not valid UTF-8.",
                hint=str(e),
                details={"raw": bytes(line)[:128].hex()},
            ) from None
    else:
        text = line

    text = text.strip()
    if not text:
        return {}

    if "\n" in text:
        raise MalformedRecordError(
            "Record spans more than one line.",
            details={"data": text[:128]},
        )

    try:
        obj = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise MalformedRecordError(
            "Record is not valid JSON.",
            hint=str(e),
            details={"data": text[:128]},
        ) from None

    if not isinstance(obj, dict):
        raise MalformedRecordError(
            f"Record must be a JSON object, got {type(obj).__name__}.",
            details={"data": text[:128]},
        )

    sample: MetricSample = {}
    for name, value in obj.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedRecordError(
                f"Metric '{name}' is not numeric.",
                details={"data": text[:128], "metric": name},
            )
        try:
            fv = float(value)
        except OverflowError:
            fv = math.inf
        if not math.isfinite(fv):
            raise MalformedRecordError(
                f"Metric '{name}' is not finite.",
                details={"data": text[:128], "metric": name},
            )
        sample[name] = fv

    return sample
