# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# snark.py

"""
Out-of-circuit Groth16 verification with py_ecc.
"""

import logging
import time

from snarkbridge import curves
from snarkbridge.curves import CurveStage
from snarkbridge.errors import VerifyError

logger = logging.getLogger(__name__)


def pairing_check(curve: CurveStage, pairs: list[tuple[tuple, tuple]]) -> bool:
    """
    True when prod e(P_i, Q_i) == 1, using a single final exponentiation.

    Args:
        curve: Curve of every point.
        pairs: (G1, G2) pairs.
    """
    acc = curves.gt_one(curve)
    for g1, g2 in pairs:
        acc = acc * curves.miller_loop(curve, g1, g2)
    return curves.final_exponentiate(curve, acc) == curves.gt_one(curve)


def compute_vk_x(vk, public_inputs) -> tuple:
    """IC[0] + sum(s_i * IC[i+1])."""
    curve = vk.curve
    vk_x = vk.ic[0]
    for i, s in enumerate(public_inputs):
        vk_x = curves.add(curve, vk_x, curves.scalar_mul(curve, vk.ic[i + 1], int(s)))
    return vk_x


def verify_proof(proof, vk, public_inputs) -> None:
    """
    Check e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta).

    Args:
        proof: `ProofRecord`.
        vk: `VerifyingKeyRecord` on the proof's curve.
        public_inputs: Public inputs, without the leading one.

    Raises:
        VerifyError: On a curve or count mismatch, or if the equation fails.
    """
    curve = vk.curve
    if proof.curve != curve:
        raise VerifyError(f"proof is over {proof.curve.name}, key over {curve.name}")
    inputs = [int(s) for s in public_inputs]
    if len(inputs) != vk.n_public:
        raise VerifyError(
            f"public input count mismatch: len(inputs)={len(inputs)} vs vk.nPublic={vk.n_public}"
        )
    if any(s < 0 or s >= curve.scalar_field for s in inputs):
        raise VerifyError("public input outside the scalar field")
    if proof.commitments:
        raise VerifyError("proofs with commitments are not supported out of circuit")

    start = time.monotonic()
    vk_x = compute_vk_x(vk, inputs)
    ok = pairing_check(
        curve,
        [
            (proof.ar, proof.bs),
            (curves.neg(curve, vk.alpha), vk.beta),
            (curves.neg(curve, vk_x), vk.gamma),
            (curves.neg(curve, proof.krs), vk.delta),
        ],
    )
    logger.info("groth16 verify on %s took %.3fs", curve.name, time.monotonic() - start)
    if not ok:
        raise VerifyError("groth16 pairing check failed")


def verify_external(bundle) -> None:
    """Verify an `ExternalBundle` outside any circuit."""
    verify_proof(bundle.proof, bundle.vk, bundle.signals.values)
