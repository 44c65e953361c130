# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# recursion.py

"""
Lift native proofs, verifying keys and public witnesses into values an
outer circuit can be assigned, and build placeholders of the same shape.

An inner point coordinate is a plain variable of the outer circuit when the
inner base field is the outer scalar field. Otherwise it is an
`EmulatedElement` of little-endian 64-bit limbs. Public inputs follow the
same rule with the inner scalar field.

Shape (public input count, commitment count) is derived once into a
`Shape` and shared by the placeholder and assignment builders.
"""

import enum
import math
from dataclasses import dataclass, field
from typing import Any

from snarkbridge import curves
from snarkbridge.constants import LIMB_BITS
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CompileError, ShapeMismatchError
from snarkbridge.frontend import check_tree_shape, register
from snarkbridge.records import ProofRecord, PublicSignals, VerifyingKeyRecord


class VkMode(enum.Enum):
    DYNAMIC = "dynamic"
    FIXED = "fixed"


def limb_count(modulus: int) -> int:
    return math.ceil(modulus.bit_length() / LIMB_BITS)


@register
@dataclass
class EmulatedElement:
    """A foreign field element split into little-endian 64-bit limbs."""

    limbs: list = field(default_factory=list)

    @classmethod
    def from_int(cls, value: int, modulus: int) -> "EmulatedElement":
        if not 0 <= value < modulus:
            raise ValueError(f"{value} is not reduced modulo {modulus}")
        mask = (1 << LIMB_BITS) - 1
        return cls([(value >> (LIMB_BITS * i)) & mask for i in range(limb_count(modulus))])

    @classmethod
    def placeholder(cls, modulus: int) -> "EmulatedElement":
        return cls([None] * limb_count(modulus))

    def value(self) -> int:
        return sum(limb << (LIMB_BITS * i) for i, limb in enumerate(self.limbs))


@register
@dataclass
class G1Value:
    x: Any = None
    y: Any = None


@register
@dataclass
class G2Value:
    x0: Any = None
    x1: Any = None
    y0: Any = None
    y1: Any = None


@register
@dataclass
class ProofValue:
    ar: G1Value = None
    bs: G2Value = None
    krs: G1Value = None
    commitments: list = field(default_factory=list)
    # zero or one entries
    commitment_pok: list = field(default_factory=list)


@register
@dataclass
class VerifyingKeyValue:
    alpha: G1Value = None
    beta: G2Value = None
    gamma: G2Value = None
    delta: G2Value = None
    ic: list = field(default_factory=list)
    commitment_keys: list = field(default_factory=list)
    is_constant: bool = False


@register
@dataclass
class WitnessValue:
    public: list = field(default_factory=list)


@dataclass(frozen=True)
class Shape:
    """What a placeholder needs to know about the inner proof system."""

    inner: CurveStage
    n_public: int
    n_commitments: int = 0

    @classmethod
    def from_constraint_system(cls, ccs) -> "Shape":
        return cls(ccs.curve, ccs.nb_public_variables, ccs.nb_commitments)

    @classmethod
    def from_verifying_key(cls, vk: VerifyingKeyRecord) -> "Shape":
        return cls(vk.curve, vk.n_public, vk.n_commitments)


# --- lifting ---


def _coordinate(value: int | None, inner: CurveStage, outer: CurveStage):
    if curves.is_native(inner, outer):
        return value
    if value is None:
        return EmulatedElement.placeholder(inner.base_field)
    return EmulatedElement.from_int(value, inner.base_field)


def _scalar(value: int | None, inner: CurveStage, outer: CurveStage):
    if inner.scalar_field == outer.scalar_field:
        return value
    if value is None:
        return EmulatedElement.placeholder(inner.scalar_field)
    return EmulatedElement.from_int(value, inner.scalar_field)


def _g1(point: tuple | None, inner: CurveStage, outer: CurveStage) -> G1Value:
    x, y = (None, None) if point is None else curves.g1_to_ints(inner, point)
    return G1Value(_coordinate(x, inner, outer), _coordinate(y, inner, outer))


def _g2(point: tuple | None, inner: CurveStage, outer: CurveStage) -> G2Value:
    coords = (None,) * 4 if point is None else curves.g2_to_ints(inner, point)
    return G2Value(*(_coordinate(c, inner, outer) for c in coords))


def value_of_proof(proof: ProofRecord, outer: CurveStage) -> ProofValue:
    inner = proof.curve
    return ProofValue(
        ar=_g1(proof.ar, inner, outer),
        bs=_g2(proof.bs, inner, outer),
        krs=_g1(proof.krs, inner, outer),
        commitments=[_g1(c, inner, outer) for c in proof.commitments],
        commitment_pok=[_g1(proof.commitment_pok, inner, outer)] if proof.commitments else [],
    )


def value_of_witness(signals: PublicSignals, outer: CurveStage) -> WitnessValue:
    return WitnessValue([_scalar(v, signals.curve, outer) for v in signals.values])


def value_of_verifying_key(
    vk: VerifyingKeyRecord, outer: CurveStage, mode: VkMode = VkMode.DYNAMIC
) -> VerifyingKeyValue:
    """
    Lift a verifying key. A FIXED key becomes a circuit constant and takes
    no part in the witness.
    """
    inner = vk.curve
    return VerifyingKeyValue(
        alpha=_g1(vk.alpha, inner, outer),
        beta=_g2(vk.beta, inner, outer),
        gamma=_g2(vk.gamma, inner, outer),
        delta=_g2(vk.delta, inner, outer),
        ic=[_g1(p, inner, outer) for p in vk.ic],
        commitment_keys=[[_g2(g, inner, outer), _g2(s, inner, outer)] for g, s in vk.commitment_keys],
        is_constant=mode is VkMode.FIXED,
    )


# --- placeholders ---


def placeholder_proof(shape: Shape, outer: CurveStage) -> ProofValue:
    inner = shape.inner
    return ProofValue(
        ar=_g1(None, inner, outer),
        bs=_g2(None, inner, outer),
        krs=_g1(None, inner, outer),
        commitments=[_g1(None, inner, outer) for _ in range(shape.n_commitments)],
        commitment_pok=[_g1(None, inner, outer)] if shape.n_commitments else [],
    )


def placeholder_witness(shape: Shape, outer: CurveStage) -> WitnessValue:
    return WitnessValue([_scalar(None, shape.inner, outer) for _ in range(shape.n_public)])


def placeholder_verifying_key(
    shape: Shape,
    outer: CurveStage,
    mode: VkMode = VkMode.DYNAMIC,
    vk: VerifyingKeyRecord | None = None,
) -> VerifyingKeyValue:
    """
    A DYNAMIC placeholder has unassigned points and ``n_public + 1`` IC
    entries. A FIXED placeholder is the constant key itself, so `vk` must be
    given and must agree with `shape`.
    """
    if mode is VkMode.FIXED:
        if vk is None:
            raise CompileError("a fixed verifying key placeholder needs the key")
        if vk.n_public != shape.n_public:
            raise ShapeMismatchError(
                f"vk.ic: expected {shape.n_public + 1} entries, got {len(vk.ic)}"
            )
        if vk.n_commitments != shape.n_commitments:
            raise ShapeMismatchError(
                f"vk.commitment_keys: expected {shape.n_commitments} entries, got {vk.n_commitments}"
            )
        return value_of_verifying_key(vk, outer, mode)
    inner = shape.inner
    return VerifyingKeyValue(
        alpha=_g1(None, inner, outer),
        beta=_g2(None, inner, outer),
        gamma=_g2(None, inner, outer),
        delta=_g2(None, inner, outer),
        ic=[_g1(None, inner, outer) for _ in range(shape.n_public + 1)],
        commitment_keys=[
            [_g2(None, inner, outer), _g2(None, inner, outer)] for _ in range(shape.n_commitments)
        ],
        is_constant=False,
    )


def placeholder_for(
    reference: Any,
    outer: CurveStage,
    mode: VkMode = VkMode.DYNAMIC,
    vk: VerifyingKeyRecord | None = None,
) -> tuple[ProofValue, VerifyingKeyValue, WitnessValue]:
    """
    Placeholder (proof, vk, witness) for verifying proofs of `reference`.

    Args:
        reference: The inner constraint system, or a `Shape` derived from it.
        outer: Curve of the verifying circuit.
        mode: Whether the key is fixed into the circuit.
        vk: The inner verifying key, required in FIXED mode.
    """
    shape = reference if isinstance(reference, Shape) else Shape.from_constraint_system(reference)
    return (
        placeholder_proof(shape, outer),
        placeholder_verifying_key(shape, outer, mode, vk),
        placeholder_witness(shape, outer),
    )


def check_shape(placeholder: Any, assignment: Any) -> None:
    """
    Fail fast when an assignment does not mirror its placeholder.

    Raises:
        ShapeMismatchError: Naming the offending path, for instance
            ``witness.public: expected 4 entries, got 3``.
    """
    check_tree_shape(placeholder, assignment)


def public_limbs(witness: WitnessValue) -> list:
    """Every limb of every public input, in order."""
    out = []
    for element in witness.public:
        if isinstance(element, EmulatedElement):
            out.extend(element.limbs)
        else:
            out.append(element)
    return out
