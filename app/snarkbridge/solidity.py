# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# solidity.py

"""
On-chain call format for BN254 Groth16 proofs.

The verifier call takes ``(uint256[8] proof, uint256[2] commitments,
uint256[2] commitmentPok)``. Proof words:

    Ar.X, Ar.Y, Bs.X.A1, Bs.X.A0, Bs.Y.A1, Bs.Y.A0, Krs.X, Krs.Y

G2 words are imaginary part first, as the EVM pairing precompile reads them.
"""

from dataclasses import dataclass
from pathlib import Path

from eth_abi import encode

from snarkbridge import curves
from snarkbridge.errors import CodecError
from snarkbridge.files import save_json
from snarkbridge.records import ProofRecord

ABI_TYPES = ["uint256[8]", "uint256[2]", "uint256[2]"]


@dataclass(frozen=True)
class Groth16CommitmentProof:
    proof: tuple
    commitments: tuple = (0, 0)
    commitment_pok: tuple = (0, 0)

    @classmethod
    def from_proof(cls, proof: ProofRecord) -> "Groth16CommitmentProof":
        """
        Raises:
            CodecError: If the proof is not over BN254 or carries more than
                one commitment.
        """
        curve = proof.curve
        if curve.name != "bn254":
            raise CodecError(f"on-chain proofs must be over bn254, got {curve.name}")
        if len(proof.commitments) > 1:
            raise CodecError("the call format holds at most one commitment")
        ax, ay = curves.g1_to_ints(curve, proof.ar)
        bx0, bx1, by0, by1 = curves.g2_to_ints(curve, proof.bs)
        cx, cy = curves.g1_to_ints(curve, proof.krs)
        commitments = (0, 0)
        pok = (0, 0)
        if proof.commitments:
            commitments = curves.g1_to_ints(curve, proof.commitments[0])
            pok = curves.g1_to_ints(curve, proof.commitment_pok)
        return cls((ax, ay, bx1, bx0, by1, by0, cx, cy), tuple(commitments), tuple(pok))

    def abi_encode(self) -> bytes:
        return encode(ABI_TYPES, [list(self.proof), list(self.commitments), list(self.commitment_pok)])

    def to_json(self) -> dict:
        return {
            "proof": [str(v) for v in self.proof],
            "commitments": [str(v) for v in self.commitments],
            "commitmentPok": [str(v) for v in self.commitment_pok],
        }


def export_public_witness(public_witness, path: str | Path) -> None:
    """Write the public inputs as a JSON array of decimal strings."""
    values = public_witness.public if hasattr(public_witness, "public") else public_witness
    save_json(path, [str(int(v)) for v in values])
