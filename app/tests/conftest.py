# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/conftest.py

from pathlib import Path

import pytest

from snarkbridge.backend import SimulatedGroth16Backend, new_witness
from snarkbridge.circuits import ExponentiateCircuit, MulCircuit
from snarkbridge.curves import BN254
from snarkbridge.files import load_json
from snarkbridge.groth_convert import ExternalBundle

SEED = b"snarkbridge-tests"

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="session")
def backend():
    return SimulatedGroth16Backend(SEED)


@pytest.fixture(scope="session")
def mul_keys(backend):
    """(ccs, pk, vk) of p * q == n over BN254."""
    ccs = backend.compile(BN254, MulCircuit())
    pk, vk = backend.setup(ccs)
    return ccs, pk, vk


@pytest.fixture(scope="session")
def mul_proof(backend, mul_keys):
    """Factory: (proof, public witness) for p * q == n over BN254."""
    ccs, pk, _ = mul_keys

    def make(p: int, q: int):
        witness = new_witness(MulCircuit(p=p, q=q, n=p * q), BN254)
        return backend.prove(ccs, pk, witness), witness.public_only()

    return make


@pytest.fixture(scope="session")
def exp_keys(backend):
    """(ccs, pk, vk) of y == x ** e over BN254."""
    ccs = backend.compile(BN254, ExponentiateCircuit())
    pk, vk = backend.setup(ccs)
    return ccs, pk, vk


@pytest.fixture(scope="session")
def exp_bundle(backend, exp_keys):
    """Factory: external bundle proving y == x ** e over BN254."""
    ccs, pk, vk = exp_keys

    def make(x: int, e: int) -> ExternalBundle:
        witness = new_witness(ExponentiateCircuit(x=x, y=x**e, e=e), BN254)
        proof = backend.prove(ccs, pk, witness)
        return ExternalBundle(proof, vk, witness.signals())

    return make


@pytest.fixture(scope="session")
def snarkjs_vk():
    """Key fields as written by snarkjs over the Hermez powers of tau."""
    return load_json(FIXTURES / "snarkjs_hermez_vk.json")
