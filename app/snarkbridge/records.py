# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# records.py

"""
Immutable Groth16 data model: proofs, verifying keys and public signals.

Points are `py_ecc` projective tuples over the record's curve.
"""

from dataclasses import dataclass, field

from snarkbridge.curves import CurveStage
from snarkbridge.errors import CodecError

# hash-to-field used for the commitment challenge when none is requested
DEFAULT_HASH_TO_FIELD = "sha256"


@dataclass(frozen=True, eq=False)
class ProofRecord:
    """
    A Groth16 proof (Ar, Bs, Krs) with optional commitment points.

    `hash_to_field` names the hash the prover used to derive the
    commitment challenge; verifiers must agree on it.
    """

    curve: CurveStage
    ar: tuple
    bs: tuple
    krs: tuple
    commitments: tuple = ()
    commitment_pok: tuple | None = None
    hash_to_field: str = DEFAULT_HASH_TO_FIELD

    def __post_init__(self):
        if self.commitments and self.commitment_pok is None:
            raise CodecError("proof with commitments must carry a commitment proof of knowledge")

    @property
    def n_commitments(self) -> int:
        return len(self.commitments)


@dataclass(frozen=True, eq=False)
class VerifyingKeyRecord:
    """
    A Groth16 verifying key.

    `ic[0]` belongs to the constant one wire, so the key verifies
    ``len(ic) - 1`` public inputs. `commitment_keys` holds one
    ``(g, g_sigma_neg)`` G2 pair per commitment.
    """

    curve: CurveStage
    alpha: tuple
    beta: tuple
    gamma: tuple
    delta: tuple
    ic: tuple
    commitment_keys: tuple = field(default=())

    def __post_init__(self):
        if len(self.ic) < 1:
            raise CodecError("verifying key needs at least one IC point")

    @property
    def n_public(self) -> int:
        return len(self.ic) - 1

    @property
    def n_commitments(self) -> int:
        return len(self.commitment_keys)


@dataclass(frozen=True)
class PublicSignals:
    """Ordered public inputs, each an element of the curve's scalar field."""

    curve: CurveStage
    values: tuple

    def __post_init__(self):
        values = tuple(self.values)
        for i, v in enumerate(values):
            if not isinstance(v, int) or isinstance(v, bool):
                raise CodecError(f"public signal {i} is not an integer")
            if v < 0 or v >= self.curve.scalar_field:
                raise CodecError(
                    f"public signal {i} is outside the {self.curve.name} scalar field"
                )
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)
