# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_curves.py

import pytest

from snarkbridge import curves
from snarkbridge.curves import (
    BLS12_377,
    BLS12_381,
    BN254,
    BW6_761,
    DEFAULT_TOWER,
    SIMULATION_TOWER,
)
from snarkbridge.errors import CodecError, CompileError


class TestDescriptors:
    def test_aliases(self):
        assert curves.get_curve("bn128") is BN254
        assert curves.get_curve("BN254") is BN254
        assert curves.get_curve("bls12-381") is BLS12_381
        assert curves.get_curve("bw6761") is BW6_761

    def test_unknown_curve(self):
        with pytest.raises(CodecError):
            curves.get_curve("secp256k1")

    def test_field_widths(self):
        assert BN254.fp_bytes == 32
        assert BLS12_381.fp_bytes == 48
        assert BLS12_377.base_field.bit_length() == 377
        assert BW6_761.base_field.bit_length() == 761

    def test_bw6_embeds_bls12_377(self):
        assert curves.is_native(BLS12_377, BW6_761)
        assert not curves.is_native(BN254, BLS12_381)
        assert not curves.is_native(BN254, BN254)

    def test_default_tower_boundaries(self):
        natives = [native for _, _, native in DEFAULT_TOWER.boundaries()]
        assert natives == [False, True, False]

    def test_simulation_tower_is_emulated(self):
        assert all(not native for _, _, native in SIMULATION_TOWER.boundaries())
        assert all(stage.has_arithmetic for stage, _, _ in SIMULATION_TOWER.boundaries())

    def test_moduli_only_curve_has_no_arithmetic(self):
        with pytest.raises(CompileError):
            BLS12_377.arithmetic()


class TestRawEncoding:
    @pytest.mark.parametrize("curve", [BN254, BLS12_381])
    def test_g1_round_trip(self, curve):
        point = curves.scalar_mul(curve, curves.g1_generator(curve), 123456789)
        raw = curves.marshal_g1(curve, point)
        assert len(raw) == 2 * curve.fp_bytes
        assert curves.g1_to_ints(curve, curves.unmarshal_g1(curve, raw)) == curves.g1_to_ints(curve, point)

    @pytest.mark.parametrize("curve", [BN254, BLS12_381])
    def test_g2_round_trip(self, curve):
        point = curves.scalar_mul(curve, curves.g2_generator(curve), 987654321)
        raw = curves.marshal_g2(curve, point)
        assert len(raw) == 4 * curve.fp_bytes
        assert curves.g2_to_ints(curve, curves.unmarshal_g2(curve, raw)) == curves.g2_to_ints(curve, point)

    def test_g2_layout_is_imaginary_first(self):
        point = curves.g2_generator(BN254)
        x0, x1, y0, y1 = curves.g2_to_ints(BN254, point)
        raw = curves.marshal_g2(BN254, point)
        assert int.from_bytes(raw[:32], "big") == x1
        assert int.from_bytes(raw[32:64], "big") == x0
        assert int.from_bytes(raw[64:96], "big") == y1
        assert int.from_bytes(raw[96:], "big") == y0

    def test_all_zero_is_infinity(self):
        assert curves.is_identity(BN254, curves.unmarshal_g1(BN254, bytes(64)))
        assert curves.is_identity(BN254, curves.unmarshal_g2(BN254, bytes(128)))

    def test_wrong_length(self):
        with pytest.raises(CodecError):
            curves.unmarshal_g1(BN254, bytes(63))

    def test_unreduced_coordinate(self):
        raw = BN254.base_field.to_bytes(32, "big") + (2).to_bytes(32, "big")
        with pytest.raises(CodecError):
            curves.unmarshal_g1(BN254, raw)

    def test_off_curve(self):
        raw = (3).to_bytes(32, "big") + (5).to_bytes(32, "big")
        with pytest.raises(CodecError):
            curves.unmarshal_g1(BN254, raw)


class TestTower:
    def test_one(self):
        tower = curves.gt_to_tower(BN254, curves.gt_one(BN254))
        assert tower[0][0] == [1, 0]
        assert all(pair == [0, 0] for i, row in enumerate(tower) for j, pair in enumerate(row) if (i, j) != (0, 0))

    @pytest.mark.parametrize("curve", [BN254, BLS12_381])
    def test_recombines_to_flat_coefficients(self, curve):
        gt = curves.pair(curve, curves.g1_generator(curve), curves.g2_generator(curve))
        tower = curves.gt_to_tower(curve, gt)
        p = curve.base_field
        flat = [0] * 12
        for i in range(2):
            for j in range(3):
                k = 2 * j + i
                a0, a1 = tower[i][j]
                flat[k] = (a0 - curve.xi0 * a1) % p
                flat[k + 6] = a1
        assert flat == [int(c) % p for c in gt.coeffs]

    def test_pair_carries_cofactor(self):
        g1, g2 = curves.g1_generator(BN254), curves.g2_generator(BN254)
        reduced = BN254.ops.pairing(g2, g1)
        assert curves.pair(BN254, g1, g2) == reduced**curves.BN254_GT_COFACTOR
        assert curves.pair(BN254, g1, g2) != reduced

    @pytest.mark.parametrize("curve", [BN254, BLS12_381])
    def test_cofactor_keeps_gt_order(self, curve):
        assert curve.gt_cofactor % curve.scalar_field != 0

    def test_no_tower_on_bw6(self):
        with pytest.raises(CodecError):
            curves.gt_to_tower(BW6_761, None)
