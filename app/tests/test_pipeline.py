# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_pipeline.py

import pytest
from eth_abi import decode

from snarkbridge import snark
from snarkbridge.artifacts import MemoryArtifactStore
from snarkbridge.backend import SimulatedGroth16Backend
from snarkbridge.config import Settings
from snarkbridge.curves import BLS12_381, BN254, DEFAULT_TOWER, SIMULATION_TOWER
from snarkbridge.errors import (
    AggregationCountError,
    CompileError,
    ConstraintNotSatisfied,
    ShapeMismatchError,
    StageError,
    VerifyError,
)
from snarkbridge.files import load_json
from snarkbridge.groth_convert import ExternalBundle, proof_from_external, public_signals_from_external
from snarkbridge.pipeline import AggregationPipeline
from snarkbridge.records import PublicSignals
from snarkbridge.solidity import ABI_TYPES
from snarkbridge.vk_convert import verifying_key_from_external


class CountingBackend(SimulatedGroth16Backend):
    def __init__(self, seed):
        super().__init__(seed)
        self.compiles = []

    def compile(self, curve, circuit):
        self.compiles.append((curve.name, type(circuit).__name__))
        return super().compile(curve, circuit)


def _pipeline(**kwargs):
    backend = CountingBackend(b"pipeline-tests")
    store = MemoryArtifactStore()
    return AggregationPipeline(backend, store, **kwargs)


@pytest.fixture(scope="module")
def run(exp_bundle):
    """One full run over two external proofs."""
    pipeline = _pipeline(batch_size=2, workers=2)
    bundles = [exp_bundle(2, 12), exp_bundle(3, 5)]
    return pipeline, pipeline.run(bundles)


class TestRun:
    def test_final_proof_verifies(self, run):
        _, exported = run
        vk = verifying_key_from_external(exported.vk)
        proof = proof_from_external(exported.proof, vk.curve)
        signals = public_signals_from_external(exported.public_signals, vk.curve)
        assert vk.curve == BN254
        snark.verify_proof(proof, vk, signals.values)

    def test_one_public_input(self, run):
        _, exported = run
        assert exported.vk["nPublic"] == 1
        assert len(exported.public_signals) == 1

    def test_calldata(self, run):
        _, exported = run
        words, commitments, pok = decode(ABI_TYPES, exported.calldata)
        assert [str(w) for w in words[:2]] == exported.proof["pi_a"][:2]
        assert tuple(commitments) == (0, 0)
        assert tuple(pok) == (0, 0)

    def test_solidity(self, run):
        _, exported = run
        assert "uint256 constant N_PUBLIC = 1;" in exported.solidity

    def test_each_circuit_compiled_once(self, run):
        pipeline, _ = run
        assert pipeline.backend.compiles == [
            ("bls12_381", "VerifyProofCircuit"),
            ("bn254", "BatchVerifyCommitmentCircuit"),
            ("bn254", "VerifyProofCircuit"),
        ]

    def test_cached_artifacts_are_reused(self, run, exp_bundle):
        pipeline, _ = run
        result = pipeline.ingest(exp_bundle(2, 3))
        assert result.curve == BLS12_381
        assert len(pipeline.backend.compiles) == 3

    def test_to_directory(self, run, tmp_path):
        _, exported = run
        exported.to_directory(tmp_path)
        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == ["Verifier.sol", "calldata.hex", "proof.json", "public_signals.json", "vkey.json"]
        assert load_json(tmp_path / "vkey.json") == exported.vk
        assert (tmp_path / "calldata.hex").read_text().strip() == exported.calldata.hex()


class TestIngest:
    def test_public_witness_is_limbs(self, exp_bundle):
        result = _pipeline().ingest(exp_bundle(2, 12))
        # two BN254 scalars, four 64-bit limbs each
        assert result.public_witness.public == (2, 0, 0, 0, 4096, 0, 0, 0)
        assert result.proof.hash_to_field == "mimc_bn254"

    def test_invalid_external_proof(self, exp_bundle):
        bundle = exp_bundle(2, 12)
        tampered = ExternalBundle(bundle.proof, bundle.vk, PublicSignals(BN254, (2, 4097)))
        with pytest.raises(StageError) as e:
            _pipeline().ingest(tampered)
        assert e.value.stage == "external"
        assert e.value.is_invalid_proof
        assert isinstance(e.value.cause, VerifyError)

    def test_invalid_proof_fails_in_circuit(self, exp_bundle):
        bundle = exp_bundle(2, 12)
        tampered = ExternalBundle(bundle.proof, bundle.vk, PublicSignals(BN254, (2, 4097)))
        with pytest.raises(StageError) as e:
            _pipeline(verify_external=False).ingest(tampered)
        assert e.value.stage == "ingest"
        assert e.value.is_invalid_proof
        assert isinstance(e.value.cause, ConstraintNotSatisfied)

    def test_signal_count_mismatch(self, exp_bundle):
        bundle = exp_bundle(2, 12)
        extra = ExternalBundle(bundle.proof, bundle.vk, PublicSignals(BN254, (2, 4096, 1)))
        with pytest.raises(StageError) as e:
            _pipeline(verify_external=False).ingest(extra)
        assert not e.value.is_invalid_proof
        assert isinstance(e.value.cause, ShapeMismatchError)
        assert "expected 2 entries, got 3" in str(e.value.cause)

    def test_default_tower_has_no_backend(self, exp_bundle):
        with pytest.raises(StageError) as e:
            _pipeline(tower=DEFAULT_TOWER).ingest(exp_bundle(2, 12))
        assert e.value.curve == "bls12_377"
        assert isinstance(e.value.cause, CompileError)
        assert not e.value.is_invalid_proof


class TestCounts:
    def test_run_needs_full_batch(self, exp_bundle):
        with pytest.raises(AggregationCountError):
            _pipeline(batch_size=2).run([exp_bundle(2, 12)])

    def test_aggregate_needs_full_batch(self):
        with pytest.raises(AggregationCountError):
            _pipeline(batch_size=2).aggregate([])

    def test_batch_size_positive(self):
        with pytest.raises(ValueError):
            _pipeline(batch_size=0)


def test_from_settings(tmp_path):
    settings = Settings(cache_dir=tmp_path, batch_size=3, workers=1, tower="default", verify_external=False)
    pipeline = AggregationPipeline.from_settings(settings)
    assert pipeline.tower is DEFAULT_TOWER
    assert pipeline.batch_size == 3
    assert pipeline.verify_external is False
    assert pipeline.store.root == tmp_path


def test_simulation_tower_is_default():
    assert _pipeline().tower is SIMULATION_TOWER


if __name__ == "__main__":
    pytest.main()
