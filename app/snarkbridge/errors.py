# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# errors.py

"""
Exception taxonomy shared by the codec, the recursion builders, the backend,
the artifact cache and the aggregation pipeline.

Codec and shape errors subclass `ValueError` so that callers can treat them
as bad input and recover locally. Backend errors abort the current stage.
"""


class SnarkBridgeError(Exception):
    """Base class for every error raised by this package."""


class CodecError(SnarkBridgeError, ValueError):
    """Malformed or undersized external data, or a point failing validation."""


class ShapeMismatchError(SnarkBridgeError, ValueError):
    """An assignment does not have the shape of its placeholder."""


class ArtifactNotFound(SnarkBridgeError):
    """No compiled artifacts exist for the requested (curve, kind)."""


class ArtifactIOError(SnarkBridgeError):
    """Artifacts exist but could not be read or written."""


class ArtifactExistsError(ArtifactIOError):
    """Another writer published the bundle first."""


class CompileError(SnarkBridgeError):
    pass


class SetupError(SnarkBridgeError):
    pass


class ProveError(SnarkBridgeError):
    pass


class ConstraintNotSatisfied(ProveError):
    """The witness does not satisfy the circuit."""


class VerifyError(SnarkBridgeError):
    pass


class AggregationCountError(SnarkBridgeError, ValueError):
    """Wrong number of proofs supplied to a fixed-size batch stage."""


class StageError(SnarkBridgeError):
    """
    A pipeline stage failed.

    Carries the stage name, the curve the stage runs on and the original
    cause. `is_invalid_proof` is True when the cause is a correctness
    failure (a proof or witness that does not verify) rather than an
    infrastructure failure (I/O, missing artifacts, shape mismatch, ...).
    """

    def __init__(self, stage: str, curve: str, cause: BaseException):
        self.stage = stage
        self.curve = curve
        self.cause = cause
        kind = "proof invalid" if self.is_invalid_proof else "infrastructure failure"
        super().__init__(f"stage '{stage}' on {curve} failed ({kind}): {cause}")

    @property
    def is_invalid_proof(self) -> bool:
        return isinstance(self.cause, (VerifyError, ConstraintNotSatisfied))
