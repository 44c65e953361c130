# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# vk_convert.py

"""
Convert Groth16 verifying keys between the native record and the external
(snarkjs) verification key JSON.

External layout:
  {protocol, curve, nPublic, vk_alpha_1, vk_beta_2, vk_gamma_2, vk_delta_2,
   IC: [[x, y, "1"], ...], vk_alphabeta_12}

`vk_alphabeta_12` is e(alpha, beta) written in the Fp12 tower layout
C{i}.B{j}.A{k}. It is recomputed from the converted points on output and
ignored on input.
"""

import json
import sys
from pathlib import Path
from typing import Any

from snarkbridge import curves
from snarkbridge.constants import PROTOCOL
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CodecError
from snarkbridge.files import load_external_json, save_json
from snarkbridge.points import decode_g1, decode_g2, encode_g1, encode_g2
from snarkbridge.records import VerifyingKeyRecord


def alphabeta_12(alpha: tuple, beta: tuple, curve: CurveStage) -> list[list[list[str]]]:
    """
    Compute e(alpha, beta), as gnark and snarkjs print it, in the 2x3x2
    nested decimal structure.

    Args:
        alpha: G1 point.
        beta: G2 point.
        curve: Curve of both points.

    Returns:
        ``out[i][j] == [A0, A1]``, the Fp2 coefficient of v^j w^i.
    """
    gt = curves.pair(curve, alpha, beta)
    return [[[str(a) for a in pair] for pair in row] for row in curves.gt_to_tower(curve, gt)]


def verifying_key_to_external(
    vk: VerifyingKeyRecord, n_public: int | None = None
) -> dict[str, Any]:
    """
    Convert a verifying key record to the external JSON layout.

    Args:
        vk: The verifying key.
        n_public: Public input count to advertise. Defaults to the key's own
            count. With zero public inputs only IC[0] is emitted.

    Returns:
        External verification key dict.
    """
    curve = vk.curve
    n = vk.n_public if n_public is None else n_public
    if n < 0:
        raise CodecError(f"nPublic must be non-negative, got {n}")
    ic = vk.ic
    if n == 0 and len(ic) > 1:
        # an IC entry beyond the one wire means nothing without a signal
        ic = ic[:1]
    elif len(ic) != n + 1:
        raise CodecError(f"IC has {len(ic)} entries, expected {n + 1} for nPublic={n}")

    return {
        "protocol": PROTOCOL,
        "curve": curve.external_name,
        "nPublic": n,
        "vk_alpha_1": encode_g1(vk.alpha, curve),
        "vk_beta_2": encode_g2(vk.beta, curve),
        "vk_gamma_2": encode_g2(vk.gamma, curve),
        "vk_delta_2": encode_g2(vk.delta, curve),
        "vk_alphabeta_12": alphabeta_12(vk.alpha, vk.beta, curve),
        "IC": [encode_g1(p, curve) for p in ic],
    }


def verifying_key_from_external(
    data: dict[str, Any], curve: CurveStage | str | None = None
) -> VerifyingKeyRecord:
    """
    Parse an external verification key.

    Args:
        data: External verification key dict.
        curve: Curve to decode on. Taken from ``data["curve"]`` when omitted.

    Raises:
        CodecError: On missing fields, a protocol other than groth16, an
            IC length disagreeing with nPublic, or an invalid point.
    """
    if not isinstance(data, dict):
        raise CodecError("verification key must be a JSON object")
    protocol = data.get("protocol", PROTOCOL)
    if protocol != PROTOCOL:
        raise CodecError(f"unsupported protocol {protocol!r}")
    if curve is None:
        if "curve" not in data:
            raise CodecError("verification key does not name its curve")
        curve = data["curve"]
    curve = curves.get_curve(curve)

    try:
        ic = [decode_g1(p, curve) for p in data["IC"]]
        record = VerifyingKeyRecord(
            curve=curve,
            alpha=decode_g1(data["vk_alpha_1"], curve),
            beta=decode_g2(data["vk_beta_2"], curve),
            gamma=decode_g2(data["vk_gamma_2"], curve),
            delta=decode_g2(data["vk_delta_2"], curve),
            ic=tuple(ic),
        )
    except KeyError as e:
        raise CodecError(f"verification key is missing {e.args[0]!r}") from e
    except TypeError as e:
        raise CodecError(f"malformed verification key: {e}") from e

    if "nPublic" in data:
        try:
            n_public = int(data["nPublic"])
        except (TypeError, ValueError) as e:
            raise CodecError(f"nPublic must be an integer, got {data['nPublic']!r}") from e
        if n_public != record.n_public:
            raise CodecError(f"nPublic={n_public} disagrees with {len(ic)} IC entries")
    return record


def convert_vk_file(
    input_path: str | Path,
    output_path: str | Path,
    curve: str | None = None,
) -> None:
    """
    Read an external vkey.json, validate every point and write it back
    normalized, with `vk_alphabeta_12` recomputed.

    Args:
        input_path: Path to the external vkey.json
        output_path: Path to write the normalized JSON
        curve: Optional curve override
    """
    vk = verifying_key_from_external(load_external_json(input_path), curve)
    save_json(output_path, verifying_key_to_external(vk))


def main() -> None:
    """CLI: read vkey.json from arg, write the normalized key to stdout or file."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m snarkbridge.vk_convert <vkey.json> [output.json]",
            file=sys.stderr,
        )
        sys.exit(1)

    input_path = sys.argv[1]

    if len(sys.argv) >= 3:
        convert_vk_file(input_path, sys.argv[2])
    else:
        vk = verifying_key_from_external(load_external_json(input_path))
        json.dump(verifying_key_to_external(vk), sys.stdout, indent=2, sort_keys=True)
        print()


if __name__ == "__main__":
    main()
