# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# circuits.py

"""
Verifier circuits and sample inner statements.

Verifier circuits carry the inner curve name as a constant so the compiled
template is self-describing. All of them raise `CompileError` from
``define`` when the verifier gadget can not be built, before any setup.
"""

from dataclasses import dataclass, field

from snarkbridge import curves, hashing
from snarkbridge.curves import CurveStage
from snarkbridge.errors import ShapeMismatchError
from snarkbridge.frontend import API, Circuit, constant, public, register, secret
from snarkbridge.recursion import ProofValue, VerifyingKeyValue, WitnessValue, public_limbs
from snarkbridge.verifier import Groth16Verifier


@register
@dataclass
class VerifyProofCircuit(Circuit):
    """One proof against one key; the inner public inputs are public here too."""

    proof: ProofValue = secret()
    vk: VerifyingKeyValue = secret()
    witness: WitnessValue = public()
    inner: str = constant(default="bn254")
    complete_arithmetic: bool = constant(default=True)

    def define(self, api: API) -> None:
        verifier = Groth16Verifier(api, curves.get_curve(self.inner), api.curve)
        verifier.assert_proof(self.vk, self.proof, self.witness, self.complete_arithmetic)


@register
@dataclass
class BatchVerifyCircuit(Circuit):
    """N proofs against one shared key, every inner public input exposed."""

    proofs: list = secret(default_factory=list)
    witnesses: list = public(default_factory=list)
    vk: VerifyingKeyValue = secret()
    inner: str = constant(default="bn254")
    complete_arithmetic: bool = constant(default=False)

    def define(self, api: API) -> None:
        if len(self.proofs) != len(self.witnesses):
            raise ShapeMismatchError(
                f"witnesses: expected {len(self.proofs)} entries, got {len(self.witnesses)}"
            )
        verifier = Groth16Verifier(api, curves.get_curve(self.inner), api.curve)
        for i, (proof, witness) in enumerate(zip(self.proofs, self.witnesses)):
            api.println("verifying in-circuit proof", i)
            verifier.assert_proof(self.vk, proof, witness, self.complete_arithmetic)


@register
@dataclass
class BatchVerifyCommitmentCircuit(Circuit):
    """
    N proofs against one shared key. The only public input is the MiMC
    digest of every limb of every inner witness.
    """

    proofs: list = secret(default_factory=list)
    witnesses: list = secret(default_factory=list)
    vk: VerifyingKeyValue = secret()
    public_hash: int = public()
    inner: str = constant(default="bn254")
    complete_arithmetic: bool = constant(default=False)

    def define(self, api: API) -> None:
        if len(self.proofs) != len(self.witnesses):
            raise ShapeMismatchError(
                f"witnesses: expected {len(self.proofs)} entries, got {len(self.witnesses)}"
            )
        hasher = api.new_hasher()
        for witness in self.witnesses:
            hasher.write(*public_limbs(witness))
        digest = hasher.sum()
        api.assert_is_equal(digest, self.public_hash)
        api.println("computed inputs hash", digest)

        verifier = Groth16Verifier(api, curves.get_curve(self.inner), api.curve)
        for i, (proof, witness) in enumerate(zip(self.proofs, self.witnesses)):
            api.println("verifying in-circuit proof", i)
            verifier.assert_proof(self.vk, proof, witness, self.complete_arithmetic)


def compute_public_inputs_hash(witnesses: list[WitnessValue], outer: CurveStage) -> int:
    """The digest `BatchVerifyCommitmentCircuit` expects as its public input."""
    limbs = []
    for witness in witnesses:
        limbs.extend(public_limbs(witness))
    return hashing.mimc_hash(outer, limbs)


# --- sample inner statements ---


@register
@dataclass
class MulCircuit(Circuit):
    """p * q == n with neither factor equal to one."""

    p: int = secret()
    q: int = secret()
    n: int = public()

    def define(self, api: API) -> None:
        api.assert_is_different(self.p, 1)
        api.assert_is_different(self.q, 1)
        api.assert_is_equal(api.mul(self.p, self.q), self.n)


EXPONENT_BITS = 8


@register
@dataclass
class ExponentiateCircuit(Circuit):
    """y == x ** e, with an 8-bit exponent, by square and multiply."""

    x: int = public()
    y: int = public()
    e: int = secret()

    def define(self, api: API) -> None:
        output = 1
        bits = api.to_binary(self.e, EXPONENT_BITS)
        # most significant bit first
        for i in range(len(bits)):
            if i != 0:
                output = api.mul(output, output)
            multiply = api.mul(output, self.x)
            output = api.select(bits[len(bits) - 1 - i], multiply, output)
        api.assert_is_equal(self.y, output)
