#!/usr/bin/env python3

# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

"""
Generate external proof bundles and point-vectors.json for cross-platform
codec tests.

Each bundle directory holds proof.json, vkey.json and public_signals.json
for y == x ** e over BN254, proved with the simulated backend.

Run from the repository root:
    python app/test-vectors/generate_vectors.py
"""

import json
from pathlib import Path

from snarkbridge import curves
from snarkbridge.backend import SimulatedGroth16Backend, new_witness
from snarkbridge.circuits import ExponentiateCircuit
from snarkbridge.curves import BLS12_381, BN254
from snarkbridge.groth_convert import save_external
from snarkbridge.points import encode_g1, encode_g2

SEED = b"snarkbridge-test-vectors"

OUT = Path(__file__).resolve().parent


def make_bundle(backend, ccs, pk, vk, name: str, x: int, e: int) -> None:
    witness = new_witness(ExponentiateCircuit(x=x, y=x**e, e=e), BN254)
    proof = backend.prove(ccs, pk, witness)
    save_external(OUT / name, proof, vk, witness.signals())


def make_point_vector(name: str, curve, k: int) -> dict:
    g1 = curves.scalar_mul(curve, curves.g1_generator(curve), k)
    g2 = curves.scalar_mul(curve, curves.g2_generator(curve), k)
    return {
        "name": name,
        "curve": curve.external_name,
        "scalar": str(k),
        "g1": encode_g1(g1, curve),
        "g1_raw": curves.marshal_g1(curve, g1).hex(),
        "g2": encode_g2(g2, curve),
        "g2_raw": curves.marshal_g2(curve, g2).hex(),
    }


backend = SimulatedGroth16Backend(SEED)
ccs = backend.compile(BN254, ExponentiateCircuit())
pk, vk = backend.setup(ccs)

bundles = [("exp-2-12", 2, 12), ("exp-3-5", 3, 5), ("exp-7-0", 7, 0)]
for name, x, e in bundles:
    make_bundle(backend, ccs, pk, vk, name, x, e)

vectors = [
    make_point_vector("bn254-small", BN254, 2),
    make_point_vector("bn254-large", BN254, BN254.scalar_field - 2),
    make_point_vector("bls12381-small", BLS12_381, 3),
    {
        "name": "infinity",
        "curve": BN254.external_name,
        "g1": ["0", "1", "0"],
        "g1_raw": "00" * 64,
        "g2": [["0", "0"], ["1", "0"], ["0", "0"]],
        "g2_raw": "00" * 128,
    },
]

out_path = OUT / "point-vectors.json"
out_path.write_text(json.dumps(vectors, indent=2) + "\n")
print(f"Wrote {len(bundles)} bundles and {len(vectors)} point vectors to {OUT}")
