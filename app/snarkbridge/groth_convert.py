# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# groth_convert.py

"""
Convert Groth16 proofs and public signals between native records and the
external (snarkjs) JSON format.

External proof:
  {pi_a: [x, y, "1"], pi_b: [[x0, x1], [y0, y1], ["1", "0"]], pi_c: [x, y, "1"],
   protocol: "groth16", curve: "bn128"}

Proofs carrying commitments additionally hold `commitments` (list of G1) and
`commitmentPok` (G1). Both keys are absent for proofs without commitments.

External public signals:
  ["4096", ...]  - decimal strings, order significant
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from snarkbridge import curves
from snarkbridge.constants import PROOF_FILE, PROTOCOL, PUBLIC_SIGNALS_FILE, VKEY_FILE
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CodecError
from snarkbridge.files import load_external_json, save_json
from snarkbridge.points import (
    decode_g1,
    decode_g2,
    encode_g1,
    encode_g2,
    parse_field_element,
)
from snarkbridge.records import ProofRecord, PublicSignals, VerifyingKeyRecord
from snarkbridge.vk_convert import verifying_key_from_external, verifying_key_to_external


def _resolve_curve(data: dict[str, Any], curve: CurveStage | str | None) -> CurveStage:
    if curve is None:
        if "curve" not in data:
            raise CodecError("proof does not name its curve")
        curve = data["curve"]
    return curves.get_curve(curve)


def proof_to_external(proof: ProofRecord) -> dict[str, Any]:
    """
    Convert a proof record to the external JSON layout.

    Args:
        proof: The proof to convert.

    Returns:
        External proof dict.
    """
    curve = proof.curve
    out = {
        "pi_a": encode_g1(proof.ar, curve),
        "pi_b": encode_g2(proof.bs, curve),
        "pi_c": encode_g1(proof.krs, curve),
        "protocol": PROTOCOL,
        "curve": curve.external_name,
    }
    if proof.commitments:
        out["commitments"] = [encode_g1(c, curve) for c in proof.commitments]
        out["commitmentPok"] = encode_g1(proof.commitment_pok, curve)
    return out


def proof_from_external(
    data: dict[str, Any], curve: CurveStage | str | None = None
) -> ProofRecord:
    """
    Parse an external proof.

    Args:
        data: External proof dict.
        curve: Curve to decode on. Taken from ``data["curve"]`` when omitted.

    Raises:
        CodecError: On missing fields, a protocol other than groth16 or an
            invalid point.
    """
    if not isinstance(data, dict):
        raise CodecError("proof must be a JSON object")
    protocol = data.get("protocol", PROTOCOL)
    if protocol != PROTOCOL:
        raise CodecError(f"unsupported protocol {protocol!r}")
    curve = _resolve_curve(data, curve)

    try:
        commitments = tuple(decode_g1(c, curve) for c in data.get("commitments", []))
        pok = None
        if commitments:
            pok = decode_g1(data["commitmentPok"], curve)
        return ProofRecord(
            curve=curve,
            ar=decode_g1(data["pi_a"], curve),
            bs=decode_g2(data["pi_b"], curve),
            krs=decode_g1(data["pi_c"], curve),
            commitments=commitments,
            commitment_pok=pok,
        )
    except KeyError as e:
        raise CodecError(f"proof is missing {e.args[0]!r}") from e
    except TypeError as e:
        raise CodecError(f"malformed proof: {e}") from e


def public_signals_to_external(signals: PublicSignals) -> list[str]:
    """Write each public signal as a normalized decimal string."""
    return [str(v) for v in signals.values]


def public_signals_from_external(
    data: list[Any], curve: CurveStage | str
) -> PublicSignals:
    """
    Parse external public signals.

    Decimal and ``0x`` hex strings are accepted; order is kept.

    Raises:
        CodecError: On a malformed entry or a value outside the scalar field.
    """
    if not isinstance(data, list):
        raise CodecError("public signals must be a JSON array")
    curve = curves.get_curve(curve)
    return PublicSignals(curve, tuple(parse_field_element(v) for v in data))


def to_external(
    proof: ProofRecord, vk: VerifyingKeyRecord, signals: PublicSignals
) -> tuple[dict[str, Any], dict[str, Any], list[str]]:
    """Convert a whole (proof, vk, signals) triple."""
    return (
        proof_to_external(proof),
        verifying_key_to_external(vk, n_public=len(signals)),
        public_signals_to_external(signals),
    )


def load_proof_file(path: str | Path, curve: CurveStage | str | None = None) -> ProofRecord:
    return proof_from_external(load_external_json(path), curve)


def load_public_signals_file(path: str | Path, curve: CurveStage | str) -> PublicSignals:
    return public_signals_from_external(load_external_json(path), curve)


@dataclass(frozen=True)
class ExternalBundle:
    """
    One externally produced (proof, verifying key, public signals) triple.
    """

    proof: ProofRecord
    vk: VerifyingKeyRecord
    signals: PublicSignals

    @property
    def curve(self) -> CurveStage:
        return self.proof.curve

    @classmethod
    def from_directory(
        cls, directory: str | Path, curve: CurveStage | str | None = None
    ) -> "ExternalBundle":
        """
        Read proof.json, vkey.json and public_signals.json from `directory`.

        The curve is taken from the verification key when not given.
        """
        directory = Path(directory)
        vk = verifying_key_from_external(load_external_json(directory / VKEY_FILE), curve)
        proof = load_proof_file(directory / PROOF_FILE, vk.curve)
        signals = load_public_signals_file(directory / PUBLIC_SIGNALS_FILE, vk.curve)
        return cls(proof, vk, signals)

    @classmethod
    def from_external(
        cls,
        proof: dict[str, Any],
        vk: dict[str, Any],
        signals: list[Any],
        curve: CurveStage | str | None = None,
    ) -> "ExternalBundle":
        vk_record = verifying_key_from_external(vk, curve)
        return cls(
            proof_from_external(proof, vk_record.curve),
            vk_record,
            public_signals_from_external(signals, vk_record.curve),
        )

    def to_directory(self, directory: str | Path) -> None:
        save_external(directory, self.proof, self.vk, self.signals)


def save_external(
    directory: str | Path,
    proof: ProofRecord,
    vk: VerifyingKeyRecord,
    signals: PublicSignals,
) -> None:
    """
    Write proof.json, vkey.json and public_signals.json into `directory`.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    proof_json, vk_json, signals_json = to_external(proof, vk, signals)
    save_json(directory / PROOF_FILE, proof_json)
    save_json(directory / VKEY_FILE, vk_json)
    save_json(directory / PUBLIC_SIGNALS_FILE, signals_json)
