# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# pipeline.py

"""
The recursive aggregation pipeline.

    ingest     external proof  -> proof over tower.ingest     (kind "verify")
    aggregate  N ingest proofs -> proof over tower.aggregate  (kind "aggregate")
    reembed    aggregate proof -> proof over tower.reembed    (kind "reembed")
    export     reembedded proof -> external JSON, ABI call data, verifier source

Every stage builds its placeholder from the shape of the proofs it verifies,
loads or compiles its artifacts, builds the assignment, checks its shape and
constraints, proves, and verifies the new proof. Failures are wrapped in
`StageError`; nothing is retried.

Ingest proofs are independent and `ingest_many` runs them on a thread pool.
Artifacts are read-only once built and shared between threads.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from snarkbridge import snark
from snarkbridge.artifacts import ArtifactStore, FileArtifactStore, load_or_compile
from snarkbridge.backend import (
    Backend,
    ConstraintSystem,
    ProverOptions,
    SimulatedGroth16Backend,
    VerifierOptions,
    Witness,
    native_prover_options,
    native_verifier_options,
    new_witness,
    solidity_prover_options,
    solidity_verifier_options,
)
from snarkbridge.circuits import (
    BatchVerifyCommitmentCircuit,
    VerifyProofCircuit,
    compute_public_inputs_hash,
)
from snarkbridge.config import Settings
from snarkbridge.constants import AGGREGATE_KIND, REEMBED_KIND, VERIFY_KIND
from snarkbridge.curves import SIMULATION_TOWER, CurveStage, CurveTower, get_tower
from snarkbridge.errors import AggregationCountError, ShapeMismatchError, SnarkBridgeError, StageError
from snarkbridge.files import save_json, save_string
from snarkbridge.groth_convert import ExternalBundle, to_external
from snarkbridge.recursion import (
    Shape,
    VkMode,
    check_shape,
    placeholder_proof,
    placeholder_verifying_key,
    placeholder_witness,
    value_of_proof,
    value_of_verifying_key,
    value_of_witness,
)
from snarkbridge.records import ProofRecord, VerifyingKeyRecord
from snarkbridge.solidity import Groth16CommitmentProof

logger = logging.getLogger(__name__)

INGEST = "ingest"
AGGREGATE = "aggregate"
REEMBED = "reembed"
EXTERNAL = "external"


@dataclass(frozen=True)
class StageResult:
    """A stage's proof with everything the next stage needs to verify it."""

    stage: str
    curve: CurveStage
    proof: ProofRecord
    vk: VerifyingKeyRecord
    ccs: ConstraintSystem
    public_witness: Witness


@dataclass(frozen=True)
class ExportedProof:
    proof: dict
    vk: dict
    public_signals: list
    calldata: bytes | None
    solidity: str | None

    def to_directory(self, directory: str | Path) -> None:
        directory = Path(directory)
        save_json(directory / "proof.json", self.proof)
        save_json(directory / "vkey.json", self.vk)
        save_json(directory / "public_signals.json", self.public_signals)
        if self.calldata is not None:
            save_string(directory / "calldata.hex", self.calldata.hex() + "\n")
        if self.solidity is not None:
            save_string(directory / "Verifier.sol", self.solidity)


class AggregationPipeline:
    """
    Args:
        backend: Proof system backend.
        store: Artifact store, consulted before every compile.
        tower: Curves of the external proofs and of each stage.
        batch_size: Number of ingest proofs per aggregate.
        workers: Threads used by `ingest_many`.
        verify_external: Verify external proofs outside any circuit first.
        stage1_vk_mode: Whether the external key is fixed into the ingest circuit.
    """

    def __init__(
        self,
        backend: Backend,
        store: ArtifactStore,
        tower: CurveTower = SIMULATION_TOWER,
        batch_size: int = 2,
        workers: int = 1,
        verify_external: bool = True,
        stage1_vk_mode: VkMode = VkMode.FIXED,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.backend = backend
        self.store = store
        self.tower = tower
        self.batch_size = batch_size
        self.workers = max(1, workers)
        self.verify_external = verify_external
        self.stage1_vk_mode = stage1_vk_mode
        self._compile_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, settings: Settings, backend: Backend | None = None, store: ArtifactStore | None = None
    ) -> "AggregationPipeline":
        return cls(
            backend=backend or SimulatedGroth16Backend(settings.seed),
            store=store or FileArtifactStore(settings.cache_dir),
            tower=get_tower(settings.tower),
            batch_size=settings.batch_size,
            workers=settings.workers,
            verify_external=settings.verify_external,
        )

    def _run_stage(
        self,
        stage: str,
        kind: str,
        curve: CurveStage,
        placeholder: Any,
        assignment: Any,
        prover_options: ProverOptions,
        verifier_options: VerifierOptions,
    ) -> StageResult:
        start = time.monotonic()
        logger.info("stage %s on %s: start", stage, curve.name)
        try:
            check_shape(placeholder, assignment)
            with self._compile_lock:
                bundle = load_or_compile(self.store, self.backend, curve, kind, placeholder)
            self.backend.is_solved(placeholder, assignment, curve)
            witness = new_witness(assignment, curve)
            proof = self.backend.prove(bundle.ccs, bundle.pk, witness, prover_options)
            public = witness.public_only()
            self.backend.verify(proof, bundle.vk, public, verifier_options)
        except SnarkBridgeError as e:
            logger.error("stage %s on %s failed: %s", stage, curve.name, e)
            raise StageError(stage, curve.name, e) from e
        logger.info("stage %s on %s: done in %.3fs", stage, curve.name, time.monotonic() - start)
        return StageResult(stage, curve, proof, bundle.vk, bundle.ccs, public)

    # --- stage 1 ---

    def ingest(self, bundle: ExternalBundle) -> StageResult:
        """Verify one external proof inside a circuit over `tower.ingest`."""
        tower = self.tower
        curve, inner = tower.ingest, tower.external
        if bundle.curve != inner or bundle.vk.curve != inner:
            cause = ShapeMismatchError(f"external proof is over {bundle.curve.name}, expected {inner.name}")
            raise StageError(INGEST, curve.name, cause)
        if self.verify_external:
            try:
                snark.verify_external(bundle)
            except SnarkBridgeError as e:
                raise StageError(EXTERNAL, inner.name, e) from e

        mode = self.stage1_vk_mode
        try:
            shape = Shape.from_verifying_key(bundle.vk)
            placeholder = VerifyProofCircuit(
                proof=placeholder_proof(shape, curve),
                vk=placeholder_verifying_key(shape, curve, mode, bundle.vk),
                witness=placeholder_witness(shape, curve),
                inner=inner.name,
                complete_arithmetic=True,
            )
            assignment = VerifyProofCircuit(
                proof=value_of_proof(bundle.proof, curve),
                vk=value_of_verifying_key(bundle.vk, curve, mode),
                witness=value_of_witness(bundle.signals, curve),
                inner=inner.name,
                complete_arithmetic=True,
            )
        except SnarkBridgeError as e:
            raise StageError(INGEST, curve.name, e) from e
        return self._run_stage(
            INGEST,
            VERIFY_KIND,
            curve,
            placeholder,
            assignment,
            native_prover_options(tower.aggregate, curve),
            native_verifier_options(tower.aggregate, curve),
        )

    def ingest_many(self, bundles: list[ExternalBundle]) -> list[StageResult]:
        """Ingest independent proofs concurrently, keeping their order."""
        if self.workers == 1 or len(bundles) < 2:
            return [self.ingest(b) for b in bundles]
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            return list(pool.map(self.ingest, bundles))

    # --- stage 2 ---

    def aggregate(self, results: list[StageResult]) -> StageResult:
        """
        Verify exactly `batch_size` ingest proofs in one circuit over
        `tower.aggregate`, exposing only the digest of their public inputs.

        Raises:
            AggregationCountError: If the number of results is not `batch_size`.
            StageError: If the stage fails.
        """
        if len(results) != self.batch_size:
            raise AggregationCountError(f"expected {self.batch_size} proofs to aggregate, got {len(results)}")
        tower = self.tower
        curve, inner = tower.aggregate, tower.ingest
        reference = results[0]
        try:
            for i, r in enumerate(results):
                if r.curve != inner or r.ccs.digest() != reference.ccs.digest():
                    raise ShapeMismatchError(f"proofs[{i}]: not produced by the shared {inner.name} circuit")
            shape = Shape.from_constraint_system(reference.ccs)
            n = self.batch_size
            witnesses = [value_of_witness(r.public_witness.signals(), curve) for r in results]
            placeholder = BatchVerifyCommitmentCircuit(
                proofs=[placeholder_proof(shape, curve) for _ in range(n)],
                witnesses=[placeholder_witness(shape, curve) for _ in range(n)],
                vk=placeholder_verifying_key(shape, curve, VkMode.FIXED, reference.vk),
                public_hash=None,
                inner=inner.name,
                complete_arithmetic=False,
            )
            assignment = BatchVerifyCommitmentCircuit(
                proofs=[value_of_proof(r.proof, curve) for r in results],
                witnesses=witnesses,
                vk=value_of_verifying_key(reference.vk, curve, VkMode.FIXED),
                public_hash=compute_public_inputs_hash(witnesses, curve),
                inner=inner.name,
                complete_arithmetic=False,
            )
        except SnarkBridgeError as e:
            raise StageError(AGGREGATE, curve.name, e) from e
        return self._run_stage(
            AGGREGATE,
            AGGREGATE_KIND,
            curve,
            placeholder,
            assignment,
            native_prover_options(tower.reembed, curve),
            native_verifier_options(tower.reembed, curve),
        )

    # --- stage 3 ---

    def reembed(self, result: StageResult) -> StageResult:
        """Verify the aggregate proof in a circuit over `tower.reembed`."""
        curve, inner = self.tower.reembed, self.tower.aggregate
        try:
            if result.curve != inner:
                raise ShapeMismatchError(f"aggregate proof is over {result.curve.name}, expected {inner.name}")
            shape = Shape.from_constraint_system(result.ccs)
            placeholder = VerifyProofCircuit(
                proof=placeholder_proof(shape, curve),
                vk=placeholder_verifying_key(shape, curve, VkMode.FIXED, result.vk),
                witness=placeholder_witness(shape, curve),
                inner=inner.name,
                complete_arithmetic=True,
            )
            assignment = VerifyProofCircuit(
                proof=value_of_proof(result.proof, curve),
                vk=value_of_verifying_key(result.vk, curve, VkMode.FIXED),
                witness=value_of_witness(result.public_witness.signals(), curve),
                inner=inner.name,
                complete_arithmetic=True,
            )
        except SnarkBridgeError as e:
            raise StageError(REEMBED, curve.name, e) from e
        if curve.name == "bn254":
            options = (solidity_prover_options(), solidity_verifier_options())
        else:
            options = (ProverOptions(), VerifierOptions())
        return self._run_stage(REEMBED, REEMBED_KIND, curve, placeholder, assignment, *options)

    # --- export ---

    def export(self, result: StageResult) -> ExportedProof:
        """External JSON triple, plus ABI call data and verifier source on BN254."""
        signals = result.public_witness.signals()
        proof_json, vk_json, signals_json = to_external(result.proof, result.vk, signals)
        calldata, solidity = None, None
        if result.curve.name == "bn254":
            calldata = Groth16CommitmentProof.from_proof(result.proof).abi_encode()
            solidity = self.backend.export_solidity(result.vk)
        return ExportedProof(proof_json, vk_json, signals_json, calldata, solidity)

    def run(self, bundles: list[ExternalBundle]) -> ExportedProof:
        """All stages for exactly one batch of external proofs."""
        if len(bundles) != self.batch_size:
            raise AggregationCountError(f"expected {self.batch_size} external proofs, got {len(bundles)}")
        start = time.monotonic()
        ingested = self.ingest_many(bundles)
        aggregated = self.aggregate(ingested)
        final = self.reembed(aggregated)
        exported = self.export(final)
        logger.info("pipeline over %d proofs took %.3fs", len(bundles), time.monotonic() - start)
        return exported
