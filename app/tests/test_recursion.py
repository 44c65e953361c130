# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_recursion.py

import pytest

from snarkbridge.curves import BLS12_377, BLS12_381, BN254, BW6_761
from snarkbridge.errors import CompileError, ShapeMismatchError
from snarkbridge.frontend import CONSTANT, PUBLIC, SECRET, leaves
from snarkbridge.records import PublicSignals
from snarkbridge.recursion import (
    EmulatedElement,
    Shape,
    VkMode,
    WitnessValue,
    check_shape,
    limb_count,
    placeholder_for,
    placeholder_verifying_key,
    public_limbs,
    value_of_proof,
    value_of_verifying_key,
    value_of_witness,
)


class TestLimbs:
    @pytest.mark.parametrize(
        "modulus, count",
        [
            (BN254.base_field, 4),
            (BLS12_381.base_field, 6),
            (BLS12_377.base_field, 6),
            (BW6_761.base_field, 12),
        ],
    )
    def test_limb_count(self, modulus, count):
        assert limb_count(modulus) == count

    def test_from_int(self):
        element = EmulatedElement.from_int(2**64 + 5, BN254.base_field)
        assert element.limbs == [5, 1, 0, 0]
        assert element.value() == 2**64 + 5

    def test_from_int_rejects_unreduced(self):
        with pytest.raises(ValueError):
            EmulatedElement.from_int(BN254.base_field, BN254.base_field)

    def test_placeholder(self):
        assert EmulatedElement.placeholder(BLS12_381.base_field).limbs == [None] * 6


class TestLifting:
    def test_emulated_coordinates(self, mul_proof):
        proof, _ = mul_proof(3, 5)
        lifted = value_of_proof(proof, BN254)
        assert isinstance(lifted.ar.x, EmulatedElement)
        assert len(lifted.bs.x0.limbs) == 4
        assert lifted.commitments == []
        assert lifted.commitment_pok == []

    def test_native_coordinates(self):
        proof, vk, witness = placeholder_for(Shape(BLS12_377, 2), BW6_761)
        assert proof.ar.x is None
        assert vk.gamma.y1 is None
        # the BLS12-377 scalar field is not the BW6-761 scalar field
        assert len(witness.public[0].limbs) == 4

    def test_witness_native_when_scalar_fields_match(self):
        signals = PublicSignals(BN254, (7, 8))
        assert value_of_witness(signals, BN254).public == [7, 8]

    def test_witness_emulated_otherwise(self):
        signals = PublicSignals(BN254, (2**64 + 1,))
        (element,) = value_of_witness(signals, BLS12_381).public
        assert element.limbs == [1, 1, 0, 0]

    def test_fixed_key_is_constant(self, mul_keys):
        vk = mul_keys[2]
        lifted = value_of_verifying_key(vk, BN254, VkMode.FIXED)
        assert lifted.is_constant
        assert {leaf.visibility for leaf in leaves(lifted)} == {CONSTANT}

    def test_dynamic_key_is_variable(self, mul_keys):
        lifted = value_of_verifying_key(mul_keys[2], BN254, VkMode.DYNAMIC)
        assert {leaf.visibility for leaf in leaves(lifted)} == {SECRET, CONSTANT}
        assert len(lifted.ic) == 2


class TestPlaceholders:
    def test_from_constraint_system(self, mul_keys):
        ccs = mul_keys[0]
        proof, vk, witness = placeholder_for(ccs, BLS12_381)
        assert len(witness.public) == 1
        assert len(vk.ic) == 2
        assert len(proof.ar.x.limbs) == 4
        assert all(limb is None for limb in proof.krs.y.limbs)

    def test_matches_assignment(self, mul_keys, mul_proof):
        ccs, _, vk = mul_keys
        proof, public = mul_proof(3, 5)
        placeholder = placeholder_for(ccs, BLS12_381)
        assignment = (
            value_of_proof(proof, BLS12_381),
            value_of_verifying_key(vk, BLS12_381),
            value_of_witness(public.signals(), BLS12_381),
        )
        check_shape(list(placeholder), list(assignment))

    def test_fixed_needs_key(self):
        with pytest.raises(CompileError):
            placeholder_verifying_key(Shape(BN254, 1), BN254, VkMode.FIXED)

    def test_fixed_key_count_mismatch(self, mul_keys):
        with pytest.raises(ShapeMismatchError, match="vk.ic"):
            placeholder_verifying_key(Shape(BN254, 3), BN254, VkMode.FIXED, mul_keys[2])

    def test_fixed_key_is_the_key(self, mul_keys):
        vk = mul_keys[2]
        placeholder = placeholder_verifying_key(Shape.from_verifying_key(vk), BN254, VkMode.FIXED, vk)
        assert placeholder == value_of_verifying_key(vk, BN254, VkMode.FIXED)

    def test_witness_length_mismatch(self):
        placeholder = WitnessValue([None] * 4)
        with pytest.raises(ShapeMismatchError, match="public: expected 4 entries, got 3"):
            check_shape(placeholder, WitnessValue([1, 2, 3]))

    def test_limb_count_mismatch(self):
        placeholder = WitnessValue([EmulatedElement.placeholder(BN254.scalar_field)])
        with pytest.raises(ShapeMismatchError, match="limbs"):
            check_shape(placeholder, WitnessValue([EmulatedElement([1, 2])]))


def test_public_limbs():
    witness = WitnessValue([EmulatedElement([1, 2]), 3, EmulatedElement([4])])
    assert public_limbs(witness) == [1, 2, 3, 4]


def test_public_limbs_visibility():
    tags = {leaf.visibility for leaf in leaves(WitnessValue([EmulatedElement([1, 2])]))}
    assert tags == {SECRET}
    assert PUBLIC not in tags


if __name__ == "__main__":
    pytest.main()
