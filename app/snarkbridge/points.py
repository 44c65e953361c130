# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# points.py

"""
Convert curve points between the external string arrays and native points.

The external toolchain writes G1 points as ``[X, Y, "1"]`` and G2 points as
``[[X.A0, X.A1], [Y.A0, Y.A1], ["1", "0"]]`` with decimal coordinates. Hex
coordinates (``0x`` prefixed) are accepted as well; for G2 the hex pairs are
already in raw order ``[[X.A1, X.A0], [Y.A1, Y.A0]]``.

Decoding always goes through the raw layout of `curves.unmarshal_g1` and
`curves.unmarshal_g2`, so every decoded point has been checked on-curve and
in the prime-order subgroup.

Sentinel quirk: a decimal coordinate equal to ``"1"`` is read as ``"0"``.
This turns the external encoding of infinity (``["0", "1", "0"]``) into the
all-zero raw buffer. It also means a genuine coordinate equal to 1 can not be
decoded; the BN254 G1 generator (1, 2) is rejected.
"""

from typing import Any

from snarkbridge import curves
from snarkbridge.constants import G1_MARKER, G2_MARKER
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CodecError


def parse_field_element(value: Any) -> int:
    """
    Parse a decimal or ``0x`` hex string into a non-negative integer.

    Raises:
        CodecError: If the value is not a string holding a non-negative number.
    """
    if not isinstance(value, str):
        raise CodecError(f"field element must be a string, got {type(value).__name__}")
    text = value.strip()
    try:
        if text.lower().startswith("0x"):
            number = int(text[2:], 16)
        else:
            if not text.isdigit():
                raise ValueError(text)
            number = int(text, 10)
    except ValueError as e:
        raise CodecError(f"malformed field element {value!r}") from e
    return number


def _sentinel(value: str) -> str:
    # compatibility with the external encoding of the point at infinity
    return "0" if value == "1" else value


def _decimal_bytes(value: str, width: int) -> bytes:
    if _is_hex(value):
        raise CodecError(f"mixed hex and decimal coordinates: {value!r}")
    number = parse_field_element(_sentinel(value))
    if number.bit_length() > 8 * width:
        raise CodecError(f"coordinate {value!r} does not fit in {width} bytes")
    return number.to_bytes(width, "big")


def _hex_bytes(value: str, width: int) -> bytes:
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise CodecError(f"expected a 0x prefixed coordinate, got {value!r}")
    digits = value[2:]
    if len(digits) > 2 * width:
        raise CodecError(f"coordinate {value!r} does not fit in {width} bytes")
    try:
        return bytes.fromhex(digits.rjust(2 * width, "0"))
    except ValueError as e:
        raise CodecError(f"malformed hex coordinate {value!r}") from e


def _is_hex(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith("0x")


def _check_entries(strings: Any, kind: str) -> None:
    if not isinstance(strings, (list, tuple)):
        raise CodecError(f"{kind} point must be an array, got {type(strings).__name__}")
    if len(strings) not in (2, 3):
        raise CodecError(f"{kind} point must have 2 or 3 entries, got {len(strings)}")


def decode_g1(strings: Any, curve: CurveStage) -> tuple:
    """
    Decode ``[X, Y]`` or ``[X, Y, Z]`` into a G1 point of `curve`.

    The optional third entry is the projective marker and is ignored.

    Raises:
        CodecError: On a wrong entry count, a malformed coordinate or a
            point failing curve validation.
    """
    _check_entries(strings, "G1")
    width = curve.fp_bytes
    x, y = strings[0], strings[1]
    if _is_hex(x):
        raw = _hex_bytes(x.strip(), width) + _hex_bytes(str(y).strip(), width)
    else:
        if not isinstance(x, str) or not isinstance(y, str):
            raise CodecError("G1 coordinates must be strings")
        raw = _decimal_bytes(x, width) + _decimal_bytes(y, width)
    return curves.unmarshal_g1(curve, raw)


def decode_g2(strings: Any, curve: CurveStage) -> tuple:
    """
    Decode ``[[x0, x1], [y0, y1]]`` (optionally followed by the marker pair)
    into a G2 point of `curve`.

    Decimal pairs are low-term first and are reordered to the raw layout
    X.A1, X.A0, Y.A1, Y.A0. Hex pairs are taken as already being in that
    layout.

    Raises:
        CodecError: Same conditions as `decode_g1`.
    """
    _check_entries(strings, "G2")
    for pair in strings[:2]:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise CodecError("G2 coordinate must be a pair of strings")
    width = curve.fp_bytes
    h = strings
    if _is_hex(h[0][0]):
        ordered = [h[0][0], h[0][1], h[1][0], h[1][1]]
        raw = b"".join(_hex_bytes(str(v).strip(), width) for v in ordered)
    else:
        ordered = [h[0][1], h[0][0], h[1][1], h[1][0]]
        if not all(isinstance(v, str) for v in ordered):
            raise CodecError("G2 coordinates must be strings")
        raw = b"".join(_decimal_bytes(v, width) for v in ordered)
    return curves.unmarshal_g2(curve, raw)


def encode_g1(point: tuple, curve: CurveStage) -> list[str]:
    """
    Encode a G1 point as ``[X, Y, "1"]``.

    The point at infinity is written the way the external toolchain writes
    it, ``["0", "1", "0"]``.
    """
    if curves.is_identity(curve, point):
        return ["0", "1", "0"]
    x, y = curves.g1_to_ints(curve, point)
    return [str(x), str(y), G1_MARKER]


def encode_g2(point: tuple, curve: CurveStage) -> list[list[str]]:
    """Encode a G2 point as ``[[X.A0, X.A1], [Y.A0, Y.A1], ["1", "0"]]``."""
    if curves.is_identity(curve, point):
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    x0, x1, y0, y1 = curves.g2_to_ints(curve, point)
    return [[str(x0), str(x1)], [str(y0), str(y1)], list(G2_MARKER)]
