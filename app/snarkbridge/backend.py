# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# backend.py

"""
The proof system contract the pipeline runs against, and a simulated
Groth16 backend implementing it.

`SimulatedGroth16Backend` compiles circuits by tracing ``define`` and proves
by solving it, so an unsatisfied circuit never yields a proof. The proof
itself is produced with the setup trapdoor instead of a QAP: the setup
scalars (alpha, beta, gamma, delta and one u_i per IC point) are derived
with HKDF-SHA256 from the backend seed and the constraint system digest, and
a proof for public inputs w is

    A = [a]G1, B = [b]G2, C = [c]G1,  c = (a*b - alpha*beta - s*gamma) / delta
    s = u_0 + sum(w_i * u_{i+1})

which satisfies the real Groth16 pairing equation. Anyone holding the seed
can forge proofs, so this backend is for development and tests only.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from string import Template
from typing import Any, Protocol

import cbor2
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from snarkbridge import circuits  # noqa: F401  registers the circuit types
from snarkbridge import curves, snark
from snarkbridge.constants import CCS_DOMAIN_TAG, SETUP_DOMAIN_TAG
from snarkbridge.curves import CurveStage
from snarkbridge.errors import (
    CompileError,
    ProveError,
    SetupError,
    SnarkBridgeError,
    VerifyError,
)
from snarkbridge.frontend import (
    CompileAPI,
    PUBLIC,
    SECRET,
    SolveAPI,
    blank,
    check_tree_shape,
    decode_tree,
    encode_tree,
    fill,
    leaves,
    witness_values,
)
from snarkbridge.hashing import generate
from snarkbridge.records import DEFAULT_HASH_TO_FIELD, ProofRecord, PublicSignals, VerifyingKeyRecord

logger = logging.getLogger(__name__)

SOLIDITY_HASH_TO_FIELD = "keccak256"


@dataclass(frozen=True)
class ProverOptions:
    """`hash_to_field` is the hash used for the commitment challenge."""

    hash_to_field: str = DEFAULT_HASH_TO_FIELD


@dataclass(frozen=True)
class VerifierOptions:
    hash_to_field: str = DEFAULT_HASH_TO_FIELD


def _native_hash(outer: CurveStage) -> str:
    return f"mimc_{outer.name}"


def native_prover_options(outer: CurveStage, inner: CurveStage) -> ProverOptions:
    """
    Options for proving on `inner` a proof that an `outer` circuit will
    verify: the challenge is hashed with MiMC over the outer scalar field.
    """
    logger.debug("prover options for %s verified in %s", inner.name, outer.name)
    return ProverOptions(_native_hash(outer))


def native_verifier_options(outer: CurveStage, inner: CurveStage) -> VerifierOptions:
    return VerifierOptions(_native_hash(outer))


def solidity_prover_options() -> ProverOptions:
    return ProverOptions(SOLIDITY_HASH_TO_FIELD)


def solidity_verifier_options() -> VerifierOptions:
    return VerifierOptions(SOLIDITY_HASH_TO_FIELD)


@dataclass(frozen=True, eq=False)
class ConstraintSystem:
    """
    A compiled circuit.

    `template` is the encoded placeholder circuit with its constants;
    `nb_public_variables` excludes the constant one wire.
    """

    curve: CurveStage
    template: Any
    nb_constraints: int
    nb_public_variables: int
    nb_secret_variables: int
    nb_commitments: int = 0

    def to_dict(self) -> dict:
        return {
            "curve": self.curve.name,
            "template": self.template,
            "nb_constraints": self.nb_constraints,
            "nb_public_variables": self.nb_public_variables,
            "nb_secret_variables": self.nb_secret_variables,
            "nb_commitments": self.nb_commitments,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConstraintSystem":
        return cls(
            curve=curves.get_curve(data["curve"]),
            template=data["template"],
            nb_constraints=int(data["nb_constraints"]),
            nb_public_variables=int(data["nb_public_variables"]),
            nb_secret_variables=int(data["nb_secret_variables"]),
            nb_commitments=int(data.get("nb_commitments", 0)),
        )

    def digest(self) -> str:
        return generate(CCS_DOMAIN_TAG + cbor2.dumps(self.to_dict(), canonical=True).hex())

    def circuit(self):
        return decode_tree(self.template)


@dataclass(frozen=True, eq=False)
class ProvingKey:
    """Setup output for one constraint system; holds the trapdoor."""

    curve: CurveStage
    ccs_digest: str
    alpha: int
    beta: int
    gamma: int
    delta: int
    ic: tuple
    vk: VerifyingKeyRecord


@dataclass(frozen=True)
class Witness:
    curve: CurveStage
    public: tuple
    secret: tuple = ()

    def public_only(self) -> "Witness":
        return Witness(self.curve, self.public)

    def signals(self) -> PublicSignals:
        return PublicSignals(self.curve, self.public)


def new_witness(assignment: Any, curve: CurveStage) -> Witness:
    """
    Collect the witness of an assignment, public values first.

    Raises:
        ShapeMismatchError: If a variable is unassigned.
    """
    pub, sec = witness_values(assignment, curve.scalar_field)
    return Witness(curve, tuple(pub), tuple(sec))


class Backend(Protocol):
    def compile(self, curve: CurveStage, circuit: Any) -> ConstraintSystem: ...

    def setup(self, ccs: ConstraintSystem) -> tuple[ProvingKey, VerifyingKeyRecord]: ...

    def prove(
        self, ccs: ConstraintSystem, pk: ProvingKey, witness: Witness, options: ProverOptions | None = None
    ) -> ProofRecord: ...

    def verify(
        self,
        proof: ProofRecord,
        vk: VerifyingKeyRecord,
        public_witness: Witness,
        options: VerifierOptions | None = None,
    ) -> None: ...

    def is_solved(self, placeholder: Any, assignment: Any, curve: CurveStage) -> None: ...

    def pair(self, curve: CurveStage, g1: tuple, g2: tuple) -> Any: ...

    def export_solidity(self, vk: VerifyingKeyRecord) -> str: ...


def _run_define(circuit: Any, api, error: type[SnarkBridgeError]) -> None:
    try:
        circuit.define(api)
    except SnarkBridgeError:
        raise
    except (ArithmeticError, TypeError, ValueError, AttributeError) as e:
        raise error(f"{type(circuit).__name__}.define failed: {e}") from e


class SimulatedGroth16Backend:
    """
    Trapdoor-simulated Groth16 over the curves `py_ecc` implements.

    Args:
        seed: Secret seed for the setup trapdoor.
    """

    def __init__(self, seed: bytes | str = b"snarkbridge"):
        self.seed = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)

    # --- compile ---

    def compile(self, curve: CurveStage, circuit: Any) -> ConstraintSystem:
        """
        Trace ``circuit.define`` and count constraints.

        Raises:
            CompileError: If the curve has no group arithmetic or the
                circuit can not be defined.
        """
        curve.arithmetic()
        start = time.monotonic()
        api = CompileAPI(curve)
        _run_define(circuit, api, CompileError)
        placeholder = blank(circuit)
        try:
            template = encode_tree(placeholder)
        except TypeError as e:
            raise CompileError(str(e)) from e
        visibilities = [leaf.visibility for leaf in leaves(placeholder)]
        ccs = ConstraintSystem(
            curve=curve,
            template=template,
            nb_constraints=api.nb_constraints,
            nb_public_variables=visibilities.count(PUBLIC),
            nb_secret_variables=visibilities.count(SECRET),
        )
        logger.info(
            "compiled %s on %s: %d constraints, %d public, %d secret (%.3fs)",
            type(circuit).__name__,
            curve.name,
            ccs.nb_constraints,
            ccs.nb_public_variables,
            ccs.nb_secret_variables,
            time.monotonic() - start,
        )
        return ccs

    # --- setup ---

    def _scalar(self, curve: CurveStage, digest: str, label: str) -> int:
        counter = 0
        while True:
            info = bytes.fromhex(SETUP_DOMAIN_TAG) + f"{digest}|{label}|{counter}".encode("utf-8")
            okm = HKDF(algorithm=hashes.SHA256(), length=64, salt=None, info=info).derive(self.seed)
            value = int.from_bytes(okm, "big") % curve.scalar_field
            if value:
                return value
            counter += 1

    def setup(self, ccs: ConstraintSystem) -> tuple[ProvingKey, VerifyingKeyRecord]:
        """
        Derive the trapdoor and the verifying key. Deterministic in
        (seed, constraint system).

        Raises:
            SetupError: If the curve has no group arithmetic.
        """
        curve = ccs.curve
        if not curve.has_arithmetic:
            raise SetupError(f"no group arithmetic for {curve.name}")
        start = time.monotonic()
        digest = ccs.digest()
        alpha, beta, gamma, delta = (self._scalar(curve, digest, n) for n in ("alpha", "beta", "gamma", "delta"))
        ic = tuple(self._scalar(curve, digest, f"ic{i}") for i in range(ccs.nb_public_variables + 1))

        g1, g2 = curves.g1_generator(curve), curves.g2_generator(curve)
        vk = VerifyingKeyRecord(
            curve=curve,
            alpha=curves.scalar_mul(curve, g1, alpha),
            beta=curves.scalar_mul(curve, g2, beta),
            gamma=curves.scalar_mul(curve, g2, gamma),
            delta=curves.scalar_mul(curve, g2, delta),
            ic=tuple(curves.scalar_mul(curve, g1, u) for u in ic),
        )
        pk = ProvingKey(curve, digest, alpha, beta, gamma, delta, ic, vk)
        logger.info("setup on %s with %d IC points took %.3fs", curve.name, len(ic), time.monotonic() - start)
        return pk, vk

    # --- prove ---

    def prove(
        self,
        ccs: ConstraintSystem,
        pk: ProvingKey,
        witness: Witness,
        options: ProverOptions | None = None,
    ) -> ProofRecord:
        """
        Solve the circuit on `witness` and emit a proof.

        Constants (for instance a fixed verifying key) come from the
        compiled template, not from the witness.

        Raises:
            ConstraintNotSatisfied: If the witness does not satisfy the circuit.
            ProveError: On a key or witness that does not belong to `ccs`.
        """
        options = options or ProverOptions()
        curve = ccs.curve
        if pk.ccs_digest != ccs.digest():
            raise ProveError("proving key does not belong to this constraint system")
        if witness.curve != curve:
            raise ProveError(f"witness is over {witness.curve.name}, circuit over {curve.name}")
        start = time.monotonic()
        try:
            circuit = fill(ccs.circuit(), witness.public, witness.secret)
        except ValueError as e:
            raise ProveError(f"witness does not fit the constraint system: {e}") from e
        _run_define(circuit, SolveAPI(curve), ProveError)

        r = curve.scalar_field
        s = pk.ic[0]
        for w, u in zip(witness.public, pk.ic[1:]):
            s = (s + w * u) % r
        a = secrets.randbelow(r - 1) + 1
        b = secrets.randbelow(r - 1) + 1
        c = (a * b - pk.alpha * pk.beta - s * pk.gamma) * pow(pk.delta, -1, r) % r
        proof = ProofRecord(
            curve=curve,
            ar=curves.scalar_mul(curve, curves.g1_generator(curve), a),
            bs=curves.scalar_mul(curve, curves.g2_generator(curve), b),
            krs=curves.scalar_mul(curve, curves.g1_generator(curve), c),
            hash_to_field=options.hash_to_field,
        )
        logger.info("proved on %s (%s) in %.3fs", curve.name, options.hash_to_field, time.monotonic() - start)
        return proof

    # --- verify ---

    def verify(
        self,
        proof: ProofRecord,
        vk: VerifyingKeyRecord,
        public_witness: Witness,
        options: VerifierOptions | None = None,
    ) -> None:
        """
        Raises:
            VerifyError: If the options disagree with the proof's or the
                pairing equation fails.
        """
        options = options or VerifierOptions()
        if proof.hash_to_field != options.hash_to_field:
            raise VerifyError(
                f"proof was made for {proof.hash_to_field}, verifier expects {options.hash_to_field}"
            )
        values = public_witness.public if isinstance(public_witness, Witness) else public_witness
        snark.verify_proof(proof, vk, values)

    def is_solved(self, placeholder: Any, assignment: Any, curve: CurveStage) -> None:
        """
        Check an assignment against its placeholder and the constraints,
        without proving.

        Raises:
            ShapeMismatchError: If the assignment does not mirror the placeholder.
            ConstraintNotSatisfied: If a constraint is violated.
        """
        check_tree_shape(placeholder, assignment)
        witness_values(assignment, curve.scalar_field)
        start = time.monotonic()
        _run_define(assignment, SolveAPI(curve), ProveError)
        logger.info("%s is solved on %s (%.3fs)", type(assignment).__name__, curve.name, time.monotonic() - start)

    def pair(self, curve: CurveStage, g1: tuple, g2: tuple) -> Any:
        return curves.pair(curve, g1, g2)

    def export_solidity(self, vk: VerifyingKeyRecord) -> str:
        """
        Solidity verifier for `vk`, using the EVM BN254 precompiles.

        Raises:
            CompileError: If the key is not over BN254.
        """
        if vk.curve.name != "bn254":
            raise CompileError(f"solidity verifiers need bn254, key is over {vk.curve.name}")
        return render_solidity(vk)


_SOLIDITY = Template(
    """// SPDX-License-Identifier: GPL-3.0-only
pragma solidity ^0.8.0;

/// @title Groth16 verifier generated by snarkbridge
contract Verifier {
    uint256 constant R = $r;
    uint256 constant P = $p;
    uint256 constant N_PUBLIC = $n_public;

    uint256 constant ALPHA_X = $alpha_x;
    uint256 constant ALPHA_Y = $alpha_y;
$g2_constants
$ic_constants

    error ProofInvalid();
    error PublicInputNotInField();
    error CommitmentsNotSupported();

    function _add(uint256 x1, uint256 y1, uint256 x2, uint256 y2) internal view returns (uint256 x, uint256 y) {
        uint256[4] memory input = [x1, y1, x2, y2];
        uint256[2] memory output;
        bool success;
        assembly {
            success := staticcall(gas(), 0x06, input, 0x80, output, 0x40)
        }
        if (!success) revert ProofInvalid();
        return (output[0], output[1]);
    }

    function _mul(uint256 x1, uint256 y1, uint256 s) internal view returns (uint256 x, uint256 y) {
        uint256[3] memory input = [x1, y1, s];
        uint256[2] memory output;
        bool success;
        assembly {
            success := staticcall(gas(), 0x07, input, 0x60, output, 0x40)
        }
        if (!success) revert ProofInvalid();
        return (output[0], output[1]);
    }

    function publicInputMSM(uint256[] calldata input) internal view returns (uint256 x, uint256 y) {
        if (input.length != N_PUBLIC) revert PublicInputNotInField();
        (x, y) = (IC0_X, IC0_Y);
        uint256 sx;
        uint256 sy;
$msm
    }

    function verifyProof(
        uint256[8] calldata proof,
        uint256[2] calldata commitments,
        uint256[2] calldata commitmentPok,
        uint256[] calldata input
    ) public view {
        if ((commitments[0] | commitments[1] | commitmentPok[0] | commitmentPok[1]) != 0) {
            revert CommitmentsNotSupported();
        }
        (uint256 x, uint256 y) = publicInputMSM(input);

        // e(A, B) * e(C, -delta) * e(alpha, -beta) * e(vk_x, -gamma) == 1
        uint256[24] memory pairing = [
            proof[0], proof[1], proof[2], proof[3], proof[4], proof[5],
            proof[6], proof[7], DELTA_NEG_X_1, DELTA_NEG_X_0, DELTA_NEG_Y_1, DELTA_NEG_Y_0,
            ALPHA_X, ALPHA_Y, BETA_NEG_X_1, BETA_NEG_X_0, BETA_NEG_Y_1, BETA_NEG_Y_0,
            x, y, GAMMA_NEG_X_1, GAMMA_NEG_X_0, GAMMA_NEG_Y_1, GAMMA_NEG_Y_0
        ];
        uint256[1] memory output;
        bool success;
        assembly {
            success := staticcall(gas(), 0x08, pairing, 0x300, output, 0x20)
        }
        if (!success || output[0] != 1) revert ProofInvalid();
    }
}
"""
)


def render_solidity(vk: VerifyingKeyRecord) -> str:
    curve = vk.curve
    g2_lines = []
    for name, point in (("BETA", vk.beta), ("GAMMA", vk.gamma), ("DELTA", vk.delta)):
        x0, x1, y0, y1 = curves.g2_to_ints(curve, curves.neg(curve, point))
        for suffix, value in (("X_0", x0), ("X_1", x1), ("Y_0", y0), ("Y_1", y1)):
            g2_lines.append(f"    uint256 constant {name}_NEG_{suffix} = {value};")
    ic_lines = []
    for i, point in enumerate(vk.ic):
        x, y = curves.g1_to_ints(curve, point)
        ic_lines.append(f"    uint256 constant IC{i}_X = {x};")
        ic_lines.append(f"    uint256 constant IC{i}_Y = {y};")
    msm = []
    for i in range(vk.n_public):
        msm.append(f"        if (input[{i}] >= R) revert PublicInputNotInField();")
        msm.append(f"        (sx, sy) = _mul(IC{i + 1}_X, IC{i + 1}_Y, input[{i}]);")
        msm.append("        (x, y) = _add(x, y, sx, sy);")
    alpha_x, alpha_y = curves.g1_to_ints(curve, vk.alpha)
    return _SOLIDITY.substitute(
        r=curve.scalar_field,
        p=curve.base_field,
        n_public=vk.n_public,
        alpha_x=alpha_x,
        alpha_y=alpha_y,
        g2_constants="\n".join(g2_lines),
        ic_constants="\n".join(ic_lines),
        msm="\n".join(msm),
    )
