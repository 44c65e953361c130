# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# verifier.py

"""
In-circuit Groth16 verification.

At compile time the gadget charges a constraint cost model; at solve time it
checks the assigned values:

    1. every emulated limb is a 64-bit value and every element is reduced
    2. proof points (and a dynamic key) are on the curve, B in the subgroup
    3. vk_x = IC[0] + sum(s_i * IC[i+1])
    4. e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)

Without complete arithmetic an identity point, or an addition in the vk_x
sum hitting P + P or P + (-P), cannot be expressed and the circuit is
unsatisfiable. Zero public inputs contribute nothing and are skipped.
"""

import logging

from snarkbridge import curves, snark
from snarkbridge.constants import LIMB_BITS
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CompileError, ConstraintNotSatisfied, ShapeMismatchError
from snarkbridge.frontend import API
from snarkbridge.recursion import (
    EmulatedElement,
    G1Value,
    G2Value,
    ProofValue,
    VerifyingKeyValue,
    WitnessValue,
    limb_count,
)

logger = logging.getLogger(__name__)

# cost model, in base field multiplications
G1_ADD = 3
G1_ADD_COMPLETE = 12
G1_DOUBLE = 4
G1_ON_CURVE = 2
G2_FACTOR = 3
MILLER_STEP_VARIABLE = 20
MILLER_STEP_FIXED = 8
FINAL_EXP_STEP = 36


class Groth16Verifier:
    """
    Groth16 verifier for proofs over `inner`, written in circuits over `outer`.

    Raises:
        CompileError: If `inner` has no group arithmetic.
    """

    def __init__(self, api: API, inner: CurveStage, outer: CurveStage):
        if not inner.has_arithmetic:
            raise CompileError(f"no in-circuit verifier for proofs over {inner.name}")
        if api.curve != outer:
            raise CompileError(f"api runs over {api.curve.name}, verifier expects {outer.name}")
        self.api = api
        self.inner = inner
        self.outer = outer
        self.native_coordinates = curves.is_native(inner, outer)
        self.native_scalars = inner.scalar_field == outer.scalar_field

    # --- cost model ---

    def _mul_cost(self) -> int:
        if self.native_coordinates:
            return 1
        n = limb_count(self.inner.base_field)
        return n * n + 2 * n

    def _range_cost(self, modulus: int, native: bool) -> int:
        return 0 if native else limb_count(modulus) * LIMB_BITS

    def _charge(self, vk: VerifyingKeyValue, witness: WitnessValue, complete: bool) -> None:
        api = self.api
        m = self._mul_cost()
        p, r = self.inner.base_field, self.inner.scalar_field
        coord = self._range_cost(p, self.native_coordinates)
        scalar_bits = r.bit_length()
        loop = p.bit_length() // 4
        n_public = len(witness.public)
        dynamic = not vk.is_constant
        add = G1_ADD_COMPLETE if complete else G1_ADD

        # A, C and B
        api.add_constraints(coord * 8 + m * (2 * G1_ON_CURVE + G2_FACTOR * G1_ON_CURVE), "proof points")
        api.add_constraints(m * G2_FACTOR * G1_DOUBLE * scalar_bits // 2, "B subgroup check")
        if dynamic:
            n_g1 = 1 + len(vk.ic)
            api.add_constraints(coord * (2 * n_g1 + 12) + m * (n_g1 + 3 * G2_FACTOR) * G1_ON_CURVE, "dynamic key points")
        api.add_constraints(
            n_public * (self._range_cost(r, self.native_scalars) + scalar_bits + 1), "public input bits"
        )
        per_input = add if not dynamic else add + G1_DOUBLE
        api.add_constraints(m * n_public * scalar_bits * per_input, "vk_x msm")
        if complete:
            api.add_constraints(m * (n_public + 2) * G1_ADD_COMPLETE, "complete arithmetic")
        # a fixed key precomputes e(alpha, beta) and the gamma and delta lines
        fixed_lines = 0 if dynamic else 2
        variable_lines = 4 if dynamic else 1
        api.add_constraints(
            m * loop * G2_FACTOR * (variable_lines * MILLER_STEP_VARIABLE + fixed_lines * MILLER_STEP_FIXED),
            "miller loop",
        )
        api.add_constraints(m * p.bit_length() * FINAL_EXP_STEP, "final exponentiation")

    # --- solving ---

    def _element(self, value, modulus: int, native: bool, path: str) -> int:
        if native:
            if isinstance(value, EmulatedElement):
                raise ConstraintNotSatisfied(f"{path}: expected a native variable")
            return value % self.outer.scalar_field
        if not isinstance(value, EmulatedElement) or len(value.limbs) != limb_count(modulus):
            raise ConstraintNotSatisfied(f"{path}: malformed emulated element")
        for i, limb in enumerate(value.limbs):
            if not 0 <= limb < (1 << LIMB_BITS):
                raise ConstraintNotSatisfied(f"{path}: limb {i} is not a {LIMB_BITS}-bit value")
        number = value.value()
        if number >= modulus:
            raise ConstraintNotSatisfied(f"{path}: element is not reduced")
        return number

    def _coord(self, value, path: str) -> int:
        return self._element(value, self.inner.base_field, self.native_coordinates, path)

    def _g1(self, value: G1Value, path: str) -> tuple:
        point = curves.g1_from_ints(self.inner, self._coord(value.x, path + ".x"), self._coord(value.y, path + ".y"))
        if not curves.is_on_curve_g1(self.inner, point):
            raise ConstraintNotSatisfied(f"{path}: point is not on {self.inner.name}")
        return point

    def _g2(self, value: G2Value, path: str, subgroup: bool = False) -> tuple:
        coords = [self._coord(getattr(value, n), f"{path}.{n}") for n in ("x0", "x1", "y0", "y1")]
        point = curves.g2_from_ints(self.inner, *coords)
        if not curves.is_on_curve_g2(self.inner, point):
            raise ConstraintNotSatisfied(f"{path}: point is not on the {self.inner.name} twist")
        if subgroup and not curves.in_subgroup(self.inner, point):
            raise ConstraintNotSatisfied(f"{path}: point is not in the prime-order subgroup")
        return point

    def _vk_x(self, ic: list, scalars: list[int], complete: bool) -> tuple:
        inner = self.inner
        if not complete and any(curves.is_identity(inner, p) for p in ic):
            raise ConstraintNotSatisfied("vk.ic: identity point needs complete arithmetic")
        acc = ic[0]
        for i, s in enumerate(scalars):
            if s == 0:
                continue
            term = curves.scalar_mul(inner, ic[i + 1], s)
            if not complete:
                if curves.is_identity(inner, term) or curves.is_identity(inner, acc):
                    raise ConstraintNotSatisfied(f"vk_x[{i}]: identity needs complete arithmetic")
                if curves.g1_to_ints(inner, acc)[0] == curves.g1_to_ints(inner, term)[0]:
                    raise ConstraintNotSatisfied(f"vk_x[{i}]: doubling edge case needs complete arithmetic")
            acc = curves.add(inner, acc, term)
        return acc

    def _solve(self, vk: VerifyingKeyValue, proof: ProofValue, witness: WitnessValue, complete: bool) -> None:
        inner = self.inner
        a = self._g1(proof.ar, "proof.ar")
        b = self._g2(proof.bs, "proof.bs", subgroup=True)
        c = self._g1(proof.krs, "proof.krs")
        if not complete and (curves.is_identity(inner, a) or curves.is_identity(inner, c)):
            raise ConstraintNotSatisfied("proof: identity point needs complete arithmetic")

        alpha = self._g1(vk.alpha, "vk.alpha")
        beta = self._g2(vk.beta, "vk.beta")
        gamma = self._g2(vk.gamma, "vk.gamma")
        delta = self._g2(vk.delta, "vk.delta")
        ic = [self._g1(p, f"vk.ic[{i}]") for i, p in enumerate(vk.ic)]
        scalars = [
            self._element(s, inner.scalar_field, self.native_scalars, f"witness.public[{i}]")
            for i, s in enumerate(witness.public)
        ]
        vk_x = self._vk_x(ic, scalars, complete)
        if not snark.pairing_check(inner, [(a, b), (curves.neg(inner, alpha), beta),
                                           (curves.neg(inner, vk_x), gamma), (curves.neg(inner, c), delta)]):
            raise ConstraintNotSatisfied("groth16 pairing check failed")

    def assert_proof(
        self,
        vk: VerifyingKeyValue,
        proof: ProofValue,
        witness: WitnessValue,
        complete_arithmetic: bool = True,
    ) -> None:
        """
        Assert that `proof` verifies against `vk` for `witness`.

        Raises:
            ShapeMismatchError: If the witness length disagrees with the IC.
            CompileError: If the key carries commitments, which this gadget
                does not verify.
            ConstraintNotSatisfied: At solve time, if the proof is invalid.
        """
        if len(vk.ic) != len(witness.public) + 1:
            raise ShapeMismatchError(
                f"witness.public: expected {len(vk.ic) - 1} entries, got {len(witness.public)}"
            )
        if vk.commitment_keys or proof.commitments:
            raise CompileError("commitment verification is not supported by the in-circuit verifier")
        if self.api.solving:
            self._solve(vk, proof, witness, complete_arithmetic)
        else:
            self._charge(vk, witness, complete_arithmetic)
