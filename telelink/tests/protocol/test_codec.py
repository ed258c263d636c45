from __future__ import annotations

import json
import math

import pytest

from telelink.core.errors import MalformedRecordError
from telelink.protocol.codec import NonFiniteValueError, decode_record, encode_sample


def test_encode_is_single_line_with_one_terminator():
    out = encode_sample({"CPU": 45.2, "MEM": 8388608})
    assert out == b'{"CPU": 45.2, "MEM": 8388608.0}\n'
    assert out.count(b"\n") == 1


def test_encode_keeps_mapping_order():
    out = encode_sample({"MEM": 1.0, "CPU": 2.0})
    assert out.index(b"MEM") < out.index(b"CPU")


def test_encode_empty_sample():
    assert encode_sample({}) == b"{}\n"


def test_encode_escapes_newlines_in_names():
    out = encode_sample({"a\nb": 1.0})
    assert out.count(b"\n") == 1
    assert decode_record(out) == {"a\nb": 1.0}


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_encode_rejects_non_finite(bad):
    with pytest.raises(NonFiniteValueError):
        encode_sample({"CPU": 1.0, "MEM": bad})


def test_non_finite_error_is_value_error():
    assert issubclass(NonFiniteValueError, ValueError)


def test_encode_rejects_non_numeric_values():
    with pytest.raises(TypeError):
        encode_sample({"CPU": "12"})
    with pytest.raises(TypeError):
        encode_sample({"CPU": True})


def test_encode_rejects_non_string_keys():
    with pytest.raises(TypeError):
        encode_sample({1: 2.0})


@pytest.mark.parametrize(
    "sample",
    [
        {},
        {"CPU": 12.5, "MEM": 2048.0},
        {"CPU": 0.0, "MEM": 0.0, "DISK": 99.99},
        {"TEMP": -40.125},
        {"X": 1e-300, "Y": 1.7976931348623157e308},
    ],
)
def test_round_trip(sample):
    decoded = decode_record(encode_sample(sample))
    assert decoded.keys() == sample.keys()
    for k, v in sample.items():
        assert decoded[k] == pytest.approx(v)


def test_decode_accepts_ints_and_returns_floats():
    out = decode_record(b'{"CPU": 12, "MEM": 2048}')
    assert out == {"CPU": 12.0, "MEM": 2048.0}
    assert all(isinstance(v, float) for v in out.values())


def test_decode_accepts_str_and_trailing_terminator():
    assert decode_record('{"CPU": 1.5}\r\n') == {"CPU": 1.5}


def test_decode_tolerates_unknown_metrics():
    assert decode_record(b'{"CPU": 1, "GPU": 77.5}') == {"CPU": 1.0, "GPU": 77.5}


@pytest.mark.parametrize("blank", [b"", b"   ", b"\t\r\n", ""])
def test_decode_blank_line_is_empty_sample(blank):
    assert decode_record(blank) == {}


@pytest.mark.parametrize(
    "line",
    [
        b"not json",
        b'{"CPU": 1',
        b"[1, 2, 3]",
        b"42",
        b'"CPU"',
        b'{"CPU": "12"}',
        b'{"CPU": true}',
        b'{"CPU": null}',
        b'{"CPU": {"core0": 1}}',
        b'{"CPU": [1]}',
        b'{"CPU": NaN}',
        b'{"CPU": Infinity}',
        b'{"CPU": 1e400}',
        b'{"CPU": 1}\n{"CPU": 2}',
    ],
)
def test_decode_malformed_raises(line):
    with pytest.raises(MalformedRecordError):
        decode_record(line)


def test_decode_invalid_utf8_raises_malformed():
    with pytest.raises(MalformedRecordError) as ei:
        decode_record(b'{"CPU": 1, "\xff": 2}')
    assert ei.value.code == "malformed_record"


def test_decode_deep_nesting_does_not_crash():
    line = b"[" * 100000 + b"]" * 100000
    with pytest.raises(MalformedRecordError):
        decode_record(line)


def test_encoded_record_is_valid_json_object():
    raw = encode_sample({"CPU": 45.2, "MEM": 8388608.0})
    assert json.loads(raw.decode("utf-8")) == {"CPU": 45.2, "MEM": 8388608.0}
