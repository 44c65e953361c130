# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# curves.py

"""
Pairing-friendly curve descriptors and the point helpers built on them.

A `CurveStage` names one level of the recursion tower: its scalar field,
its base field and, where this package can do group arithmetic on it, the
`py_ecc` module implementing G1, G2 and the pairing. BN254 and BLS12-381 are
backed by `py_ecc`; BLS12-377 and BW6-761 are described by their moduli only
so that shapes (limb counts, native embeddings) can be computed for them.

Points are kept in `py_ecc`'s optimized projective form, normalized so that
z == 1 (or the curve's identity), which makes tuple equality meaningful.

Raw encoding (the layout the external hex format and the artifact files
use), big-endian, every coordinate left-padded to the base field width:

    G1: X || Y
    G2: X.A1 || X.A0 || Y.A1 || Y.A0

An all-zero buffer is the point at infinity.
"""

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any

import py_ecc.optimized_bls12_381 as bls12_381_ops
import py_ecc.optimized_bn128 as bn128_ops

from snarkbridge.errors import CodecError, CompileError

G1Point = tuple
G2Point = tuple


@dataclass(frozen=True)
class CurveStage:
    """
    One curve of the recursion tower.

    Attributes:
        name: Canonical name (``bn254``, ``bls12_381``, ...).
        external_name: Name used by the external JSON format.
        scalar_field: Order r of G1/G2, the field circuits over this curve
            are written in.
        base_field: Modulus p of the field the point coordinates live in.
        xi0: Real part of the Fp2 non-residue of the Fp12 tower, or None
            when the curve has no Fp2/Fp6/Fp12 tower.
        mimc_exponent: S-box exponent of the MiMC hash over the scalar field.
        ops: The `py_ecc` module implementing the group law, or None.
        gt_cofactor: Power the reduced pairing is raised to so that GT values
            match what gnark and snarkjs print.
    """

    name: str
    external_name: str
    scalar_field: int
    base_field: int
    xi0: int | None
    mimc_exponent: int
    ops: ModuleType | None = field(default=None, repr=False, compare=False)
    gt_cofactor: int = 1

    @property
    def fp_bytes(self) -> int:
        return (self.base_field.bit_length() + 7) // 8

    @property
    def fr_bytes(self) -> int:
        return (self.scalar_field.bit_length() + 7) // 8

    @property
    def has_arithmetic(self) -> bool:
        return self.ops is not None

    def arithmetic(self) -> ModuleType:
        """Return the group law module, or raise `CompileError` if there is none."""
        if self.ops is None:
            raise CompileError(f"no group arithmetic available for curve {self.name}")
        return self.ops


# BN parameter x0; the hard part of the final exponentiation used by gnark and
# snarkjs computes the reduced pairing to the power 2*x0*(6*x0^2 + 3*x0 + 1).
BN_X0 = 4965661367192848881
BN254_GT_COFACTOR = 2 * BN_X0 * (6 * BN_X0**2 + 3 * BN_X0 + 1)

# gnark BLS12-381 final exponentiation (Hayashida et al.) carries a factor of 3.
BLS12_381_GT_COFACTOR = 3

BN254 = CurveStage(
    name="bn254",
    external_name="bn128",
    scalar_field=bn128_ops.curve_order,
    base_field=bn128_ops.FQ.field_modulus,
    xi0=9,
    mimc_exponent=5,
    ops=bn128_ops,
    gt_cofactor=BN254_GT_COFACTOR,
)

BLS12_381 = CurveStage(
    name="bls12_381",
    external_name="bls12381",
    scalar_field=bls12_381_ops.curve_order,
    base_field=bls12_381_ops.FQ.field_modulus,
    xi0=1,
    mimc_exponent=5,
    ops=bls12_381_ops,
    gt_cofactor=BLS12_381_GT_COFACTOR,
)

BLS12_377 = CurveStage(
    name="bls12_377",
    external_name="bls12377",
    scalar_field=0x12AB655E9A2CA55660B44D1E5C37B00159AA76FED00000010A11800000000001,
    base_field=0x01AE3A4617C510EAC63B05C06CA1493B1A22D9F300F5138F1EF3622FBA094800170B5D44300000008508C00000000001,
    xi0=0,
    mimc_exponent=17,
)

BW6_761 = CurveStage(
    name="bw6_761",
    external_name="bw6761",
    scalar_field=BLS12_377.base_field,
    base_field=int(
        "122e824fb83ce0ad187c94004faff3eb926186a81d14688528275ef8087be41707ba638e5"
        "84e91903cebaff25b423048689c8ed12f9fd9071dcd3dc73ebff2e98a116c25667a8f816"
        "0cf8aeeaf0a437e6913e6870000082f49d00000000008b",
        16,
    ),
    xi0=None,
    mimc_exponent=5,
)

CURVES = {c.name: c for c in (BN254, BLS12_381, BLS12_377, BW6_761)}

_ALIASES = {
    "bn128": "bn254",
    "altbn128": "bn254",
    "alt_bn128": "bn254",
    "bls12381": "bls12_381",
    "bls12-381": "bls12_381",
    "bls12377": "bls12_377",
    "bls12-377": "bls12_377",
    "bw6761": "bw6_761",
    "bw6-761": "bw6_761",
}


def get_curve(name: str | CurveStage) -> CurveStage:
    """
    Resolve a curve descriptor by canonical or external name.

    Raises:
        CodecError: If the name is unknown.
    """
    if isinstance(name, CurveStage):
        return name
    if not isinstance(name, str):
        raise CodecError(f"curve name must be a string, got {name!r}")
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    if key not in CURVES:
        raise CodecError(f"unknown curve {name!r}")
    return CURVES[key]


def is_native(inner: CurveStage, outer: CurveStage) -> bool:
    """True when the coordinates of `inner` points are native variables of `outer` circuits."""
    return inner.base_field == outer.scalar_field


@dataclass(frozen=True)
class CurveTower:
    """
    The curves used by the aggregation pipeline.

    external: curve of the externally produced proofs.
    ingest: stage 1, verifies one external proof.
    aggregate: stage 2, verifies a batch of stage-1 proofs.
    reembed: stage 3, verifies the aggregate proof on a curve the external
        ecosystem can consume.
    """

    name: str
    external: CurveStage
    ingest: CurveStage
    aggregate: CurveStage
    reembed: CurveStage

    def boundaries(self) -> list[tuple[CurveStage, CurveStage, bool]]:
        """(inner, outer, native) for each recursion step."""
        steps = [
            (self.external, self.ingest),
            (self.ingest, self.aggregate),
            (self.aggregate, self.reembed),
        ]
        return [(i, o, is_native(i, o)) for i, o in steps]


# the production embedding tower: BLS12-377 points are native in BW6-761
DEFAULT_TOWER = CurveTower("default", BN254, BLS12_377, BW6_761, BN254)

# every boundary is field-emulated, but every curve has py_ecc arithmetic
SIMULATION_TOWER = CurveTower("simulation", BN254, BLS12_381, BN254, BN254)

TOWERS = {t.name: t for t in (DEFAULT_TOWER, SIMULATION_TOWER)}


def get_tower(name: str) -> CurveTower:
    if name not in TOWERS:
        raise ValueError(f"unknown curve tower {name!r}, expected one of {sorted(TOWERS)}")
    return TOWERS[name]


# --- points ---


def g1_generator(curve: CurveStage) -> G1Point:
    return curve.arithmetic().G1


def g2_generator(curve: CurveStage) -> G2Point:
    return curve.arithmetic().G2


def identity_g1(curve: CurveStage) -> G1Point:
    return curve.arithmetic().Z1


def identity_g2(curve: CurveStage) -> G2Point:
    return curve.arithmetic().Z2


def is_identity(curve: CurveStage, point: tuple) -> bool:
    return bool(curve.arithmetic().is_inf(point))


def affine(curve: CurveStage, point: tuple) -> tuple:
    """Normalize a projective point so that z == 1, keeping the identity as is."""
    ops = curve.arithmetic()
    if ops.is_inf(point):
        return ops.Z1 if isinstance(point[2], ops.FQ) else ops.Z2
    x, y = ops.normalize(point)
    return (x, y, x.one())


def g1_from_ints(curve: CurveStage, x: int, y: int) -> G1Point:
    """Build a G1 point from affine coordinates; (0, 0) is the identity. No validation."""
    ops = curve.arithmetic()
    if x == 0 and y == 0:
        return ops.Z1
    return (ops.FQ(x), ops.FQ(y), ops.FQ.one())


def g2_from_ints(curve: CurveStage, x0: int, x1: int, y0: int, y1: int) -> G2Point:
    """Build a G2 point from low-term-first Fp2 coordinates. No validation."""
    ops = curve.arithmetic()
    if x0 == 0 and x1 == 0 and y0 == 0 and y1 == 0:
        return ops.Z2
    return (ops.FQ2([x0, x1]), ops.FQ2([y0, y1]), ops.FQ2.one())


def g1_to_ints(curve: CurveStage, point: G1Point) -> tuple[int, int]:
    if is_identity(curve, point):
        return 0, 0
    x, y, _ = affine(curve, point)
    return int(x), int(y)


def g2_to_ints(curve: CurveStage, point: G2Point) -> tuple[int, int, int, int]:
    """Return (X.A0, X.A1, Y.A0, Y.A1)."""
    if is_identity(curve, point):
        return 0, 0, 0, 0
    x, y, _ = affine(curve, point)
    return (
        int(x.coeffs[0]),
        int(x.coeffs[1]),
        int(y.coeffs[0]),
        int(y.coeffs[1]),
    )


def is_on_curve_g1(curve: CurveStage, point: G1Point) -> bool:
    ops = curve.arithmetic()
    return bool(ops.is_on_curve(point, ops.b))


def is_on_curve_g2(curve: CurveStage, point: G2Point) -> bool:
    ops = curve.arithmetic()
    return bool(ops.is_on_curve(point, ops.b2))


def in_subgroup(curve: CurveStage, point: tuple) -> bool:
    """Check [r]P == O."""
    ops = curve.arithmetic()
    return bool(ops.is_inf(ops.multiply(point, curve.scalar_field)))


def scalar_mul(curve: CurveStage, point: tuple, scalar: int) -> tuple:
    ops = curve.arithmetic()
    return affine(curve, ops.multiply(point, scalar % curve.scalar_field))


def add(curve: CurveStage, left: tuple, right: tuple) -> tuple:
    return affine(curve, curve.arithmetic().add(left, right))


def neg(curve: CurveStage, point: tuple) -> tuple:
    return curve.arithmetic().neg(point)


# --- raw encoding ---


def _int_to_bytes(value: int, width: int) -> bytes:
    return value.to_bytes(width, "big")


def _split(raw: bytes, width: int, count: int) -> list[int]:
    return [int.from_bytes(raw[i * width : (i + 1) * width], "big") for i in range(count)]


def marshal_g1(curve: CurveStage, point: G1Point) -> bytes:
    width = curve.fp_bytes
    x, y = g1_to_ints(curve, point)
    return _int_to_bytes(x, width) + _int_to_bytes(y, width)


def marshal_g2(curve: CurveStage, point: G2Point) -> bytes:
    width = curve.fp_bytes
    x0, x1, y0, y1 = g2_to_ints(curve, point)
    return b"".join(_int_to_bytes(v, width) for v in (x1, x0, y1, y0))


def unmarshal_g1(curve: CurveStage, raw: bytes, check_subgroup: bool = True) -> G1Point:
    """
    Decode a raw uncompressed G1 point and validate it.

    Raises:
        CodecError: On a wrong length, a coordinate >= p, an off-curve point
            or (when `check_subgroup`) a point outside the r-torsion.
    """
    width = curve.fp_bytes
    if len(raw) != 2 * width:
        raise CodecError(f"G1 raw encoding must be {2 * width} bytes, got {len(raw)}")
    x, y = _split(raw, width, 2)
    if x >= curve.base_field or y >= curve.base_field:
        raise CodecError("G1 coordinate is not reduced modulo the base field")
    point = g1_from_ints(curve, x, y)
    if not is_on_curve_g1(curve, point):
        raise CodecError(f"G1 point is not on {curve.name}")
    if check_subgroup and not in_subgroup(curve, point):
        raise CodecError(f"G1 point is not in the {curve.name} prime-order subgroup")
    return point


def unmarshal_g2(curve: CurveStage, raw: bytes, check_subgroup: bool = True) -> G2Point:
    """
    Decode a raw uncompressed G2 point (X.A1 || X.A0 || Y.A1 || Y.A0) and validate it.

    Raises:
        CodecError: Same conditions as `unmarshal_g1`.
    """
    width = curve.fp_bytes
    if len(raw) != 4 * width:
        raise CodecError(f"G2 raw encoding must be {4 * width} bytes, got {len(raw)}")
    x1, x0, y1, y0 = _split(raw, width, 4)
    if any(v >= curve.base_field for v in (x0, x1, y0, y1)):
        raise CodecError("G2 coordinate is not reduced modulo the base field")
    point = g2_from_ints(curve, x0, x1, y0, y1)
    if not is_on_curve_g2(curve, point):
        raise CodecError(f"G2 point is not on the {curve.name} twist")
    if check_subgroup and not in_subgroup(curve, point):
        raise CodecError(f"G2 point is not in the {curve.name} prime-order subgroup")
    return point


# --- pairing ---


def pair(curve: CurveStage, g1: G1Point, g2: G2Point) -> Any:
    """e(g1, g2) as gnark and snarkjs compute it, raised to the GT cofactor."""
    return curve.arithmetic().pairing(g2, g1) ** curve.gt_cofactor


def miller_loop(curve: CurveStage, g1: G1Point, g2: G2Point) -> Any:
    return curve.arithmetic().pairing(g2, g1, final_exponentiate=False)


def final_exponentiate(curve: CurveStage, value: Any) -> Any:
    return curve.arithmetic().final_exponentiate(value)


def gt_one(curve: CurveStage) -> Any:
    return curve.arithmetic().FQ12.one()


def gt_to_tower(curve: CurveStage, value: Any) -> list[list[list[int]]]:
    """
    Decompose an Fp12 element into the tower layout C{i}.B{j}.A{k}.

    py_ecc represents Fp12 as Fp[w]/(w^12 - 2*xi0*w^6 + xi0^2 + 1) while the
    tower is Fp2[u]/(u^2 + 1), Fp6 = Fp2[v]/(v^3 - (xi0 + u)),
    Fp12 = Fp6[w]/(w^2 - v). With u = w^6 - xi0, the coefficient pair
    (A0, A1) of v^j w^i sits on w^k, k = 2j + i, as:

        c[k] = A0 - xi0 * A1,  c[k + 6] = A1
    """
    if curve.xi0 is None:
        raise CodecError(f"curve {curve.name} has no Fp12 tower")
    p = curve.base_field
    c = [int(x) % p for x in value.coeffs]
    out = []
    for i in range(2):
        row = []
        for j in range(3):
            k = 2 * j + i
            a1 = c[k + 6]
            a0 = (c[k] + curve.xi0 * a1) % p
            row.append([a0, a1])
        out.append(row)
    return out
