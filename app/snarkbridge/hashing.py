# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

import hashlib
import binascii
import logging
import math
from functools import lru_cache

from snarkbridge.constants import MIMC_DOMAIN_TAG
from snarkbridge.curves import CurveStage

logger = logging.getLogger(__name__)


def generate(input_string: str) -> str:
    """
    Calculates the blake2b_224 hash digest of the input string.

    Args:
        input_string (str): The hex string to be hashed.

    Returns:
        str: The blake2b_224 hash digest of the input string.
    """
    # Calculate the hash digest using blake2b_224
    hash_digest = hashlib.blake2b(
        binascii.unhexlify(input_string), digest_size=28
    ).hexdigest()

    return hash_digest


def mimc_rounds(curve: CurveStage) -> int:
    """Rounds needed so that x -> x^e has full degree over the scalar field."""
    return math.ceil(curve.scalar_field.bit_length() / math.log2(curve.mimc_exponent))


@lru_cache(maxsize=None)
def mimc_constants(curve: CurveStage) -> tuple[int, ...]:
    """
    Round constants: a blake2b chain seeded with the domain tag and the
    curve name, each digest read as an integer.
    """
    digest = generate(MIMC_DOMAIN_TAG + curve.name.encode("utf-8").hex())
    out = []
    for _ in range(mimc_rounds(curve)):
        out.append(int(digest, 16) % curve.scalar_field)
        digest = generate(digest)
    return tuple(out)


class MiMC:
    """
    MiMC in Miyaguchi-Preneel mode over a curve's scalar field.

    Usage mirrors `hashlib`: `write` elements, then read `sum`.
    """

    def __init__(self, curve: CurveStage):
        self.curve = curve
        self.modulus = curve.scalar_field
        self.exponent = curve.mimc_exponent
        self.constants = mimc_constants(curve)
        self.data: list[int] = []

    def write(self, *elements: int) -> None:
        self.data.extend(int(e) % self.modulus for e in elements)

    def _encrypt(self, message: int, key: int) -> int:
        r = self.modulus
        x = message
        for c in self.constants:
            x = pow((x + key + c) % r, self.exponent, r)
        return (x + key) % r

    def sum(self) -> int:
        h = 0
        for m in self.data:
            h = (self._encrypt(m, h) + h + m) % self.modulus
        return h


def mimc_hash(curve: CurveStage, elements) -> int:
    """One-shot MiMC digest of `elements`."""
    hasher = MiMC(curve)
    hasher.write(*elements)
    digest = hasher.sum()
    logger.debug("mimc over %s of %d elements: %d", curve.name, len(hasher.data), digest)
    return digest
