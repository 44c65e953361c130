# test_groth_convert.py
#
# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

import json

import pytest

from snarkbridge import curves, snark
from snarkbridge.curves import BLS12_381, BN254
from snarkbridge.errors import CodecError
from snarkbridge.groth_convert import (
    ExternalBundle,
    load_proof_file,
    load_public_signals_file,
    proof_from_external,
    proof_to_external,
    public_signals_from_external,
    public_signals_to_external,
    save_external,
    to_external,
)
from snarkbridge.records import ProofRecord, PublicSignals


def _point(curve, k):
    return curves.scalar_mul(curve, curves.g1_generator(curve), k)


def _same_proof(left: ProofRecord, right: ProofRecord) -> bool:
    curve = left.curve
    return (
        left.curve == right.curve
        and curves.g1_to_ints(curve, left.ar) == curves.g1_to_ints(curve, right.ar)
        and curves.g2_to_ints(curve, left.bs) == curves.g2_to_ints(curve, right.bs)
        and curves.g1_to_ints(curve, left.krs) == curves.g1_to_ints(curve, right.krs)
    )


def test_proof_layout(exp_bundle):
    bundle = exp_bundle(2, 12)
    out = proof_to_external(bundle.proof)
    assert out["protocol"] == "groth16"
    assert out["curve"] == "bn128"
    assert out["pi_a"][2] == "1"
    assert out["pi_b"][2] == ["1", "0"]
    assert out["pi_c"][2] == "1"
    assert "commitments" not in out
    assert "commitmentPok" not in out


def test_proof_round_trip(exp_bundle):
    proof = exp_bundle(3, 5).proof
    decoded = proof_from_external(json.loads(json.dumps(proof_to_external(proof))))
    assert _same_proof(proof, decoded)
    assert decoded.n_commitments == 0


def test_proof_curve_override():
    proof = ProofRecord(
        BLS12_381,
        _point(BLS12_381, 3),
        curves.scalar_mul(BLS12_381, curves.g2_generator(BLS12_381), 5),
        _point(BLS12_381, 7),
    )
    data = proof_to_external(proof)
    assert data["curve"] == "bls12381"
    del data["curve"]
    with pytest.raises(CodecError):
        proof_from_external(data)
    assert _same_proof(proof, proof_from_external(data, "bls12_381"))


def test_proof_with_commitment_round_trip():
    g2 = curves.scalar_mul(BN254, curves.g2_generator(BN254), 11)
    proof = ProofRecord(
        BN254,
        _point(BN254, 3),
        g2,
        _point(BN254, 5),
        commitments=(_point(BN254, 7),),
        commitment_pok=_point(BN254, 9),
    )
    data = proof_to_external(proof)
    assert len(data["commitments"]) == 1
    decoded = proof_from_external(data)
    assert decoded.n_commitments == 1
    assert curves.g1_to_ints(BN254, decoded.commitment_pok) == curves.g1_to_ints(BN254, _point(BN254, 9))


def test_commitments_without_pok():
    with pytest.raises(CodecError):
        ProofRecord(
            BN254,
            _point(BN254, 3),
            curves.g2_generator(BN254),
            _point(BN254, 5),
            commitments=(_point(BN254, 7),),
        )


def test_wrong_protocol(exp_bundle):
    data = proof_to_external(exp_bundle(2, 3).proof)
    data["protocol"] = "plonk"
    with pytest.raises(CodecError, match="protocol"):
        proof_from_external(data)


@pytest.mark.parametrize("key", ["pi_a", "pi_b", "pi_c"])
def test_missing_point(exp_bundle, key):
    data = proof_to_external(exp_bundle(2, 3).proof)
    del data[key]
    with pytest.raises(CodecError, match=key):
        proof_from_external(data)


def test_corrupted_point(exp_bundle):
    data = proof_to_external(exp_bundle(2, 3).proof)
    data["pi_a"][0] = str(int(data["pi_a"][0]) + 1)
    with pytest.raises(CodecError):
        proof_from_external(data)


def test_public_signals():
    signals = public_signals_from_external(["4096", "0x10", "007"], "bn128")
    assert signals.values == (4096, 16, 7)
    assert public_signals_to_external(signals) == ["4096", "16", "7"]


def test_public_signal_out_of_field():
    with pytest.raises(CodecError):
        public_signals_from_external([str(BN254.scalar_field)], BN254)


def test_public_signals_not_a_list():
    with pytest.raises(CodecError):
        public_signals_from_external({"inputs": ["1"]}, BN254)


def test_to_external_advertises_signal_count(exp_bundle):
    bundle = exp_bundle(2, 12)
    _, vk_json, signals_json = to_external(bundle.proof, bundle.vk, bundle.signals)
    assert vk_json["nPublic"] == 2
    assert len(vk_json["IC"]) == 3
    assert signals_json == ["2", "4096"]


def test_bundle_directory_round_trip(tmp_path, exp_bundle):
    bundle = exp_bundle(3, 5)
    bundle.to_directory(tmp_path)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["proof.json", "public_signals.json", "vkey.json"]

    loaded = ExternalBundle.from_directory(tmp_path)
    assert loaded.curve == BN254
    assert loaded.signals == PublicSignals(BN254, (3, 243))
    assert _same_proof(bundle.proof, loaded.proof)
    snark.verify_external(loaded)


def test_load_proof_file(tmp_path, exp_bundle):
    bundle = exp_bundle(2, 3)
    save_external(tmp_path, bundle.proof, bundle.vk, bundle.signals)
    assert _same_proof(bundle.proof, load_proof_file(tmp_path / "proof.json"))


@pytest.mark.parametrize("name", ["proof.json", "vkey.json", "public_signals.json"])
def test_bundle_directory_invalid_json(tmp_path, exp_bundle, name):
    exp_bundle(2, 3).to_directory(tmp_path)
    (tmp_path / name).write_text("{not json")
    with pytest.raises(CodecError, match=name):
        ExternalBundle.from_directory(tmp_path)


def test_loaders_reject_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_bytes(b"\xff\xfe")
    with pytest.raises(CodecError):
        load_proof_file(path, BN254)
    with pytest.raises(CodecError):
        load_public_signals_file(path, BN254)


if __name__ == "__main__":
    pytest.main()
