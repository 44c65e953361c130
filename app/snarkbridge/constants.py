# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# domain tags
SETUP_DOMAIN_TAG = "GROTH16|Simulated|Setup|v1|".encode("utf-8").hex()
CCS_DOMAIN_TAG = "CCS|Digest|v1|".encode("utf-8").hex()
MIMC_DOMAIN_TAG = "MIMC|Constants|v1|".encode("utf-8").hex()

# external (snarkjs) format
PROTOCOL = "groth16"
G1_MARKER = "1"
G2_MARKER = ["1", "0"]

# emulated field elements are split into limbs of this many bits
LIMB_BITS = 64

# circuit kinds, used as artifact file name tags
VERIFY_KIND = "verify"
AGGREGATE_KIND = "aggregate"
REEMBED_KIND = "reembed"

# artifact file names, keyed by circuit kind
CIRCUIT_FILE = "circuit_{kind}.r1cs"
PROVING_KEY_FILE = "pk_{kind}.bin"
VERIFYING_KEY_FILE = "vk_{kind}.bin"

# external data file names
PROOF_FILE = "proof.json"
VKEY_FILE = "vkey.json"
PUBLIC_SIGNALS_FILE = "public_signals.json"
