# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# artifacts.py

"""
Persist and load compiled circuit artifacts.

A bundle is (constraint system, proving key, verifying key) for one circuit
kind on one curve. On disk:

    <root>/<curve>/<kind>/circuit_<kind>.r1cs
    <root>/<curve>/<kind>/pk_<kind>.bin
    <root>/<curve>/<kind>/vk_<kind>.bin

All three are CBOR. The verifying key is written canonically with raw point
encodings and loaded with full point validation; the proving key is written
plainly and loaded without subgroup checks.

A missing constraint system is the only `ArtifactNotFound`; it is the one
condition that triggers a compile. Everything else is `ArtifactIOError`.

The cache key is (curve, kind) only. Changing a circuit's shape (batch size,
public input count, a fixed key) without clearing the cache reuses stale
artifacts; clearing it is the caller's job.
"""

import errno
import logging
import os
import shutil
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import cbor2

from snarkbridge import curves
from snarkbridge.backend import Backend, ConstraintSystem, ProvingKey
from snarkbridge.constants import CIRCUIT_FILE, PROVING_KEY_FILE, VERIFYING_KEY_FILE
from snarkbridge.curves import CurveStage
from snarkbridge.errors import ArtifactExistsError, ArtifactIOError, ArtifactNotFound, CodecError
from snarkbridge.files import write_exclusive
from snarkbridge.records import VerifyingKeyRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactBundle:
    ccs: ConstraintSystem
    pk: ProvingKey
    vk: VerifyingKeyRecord


class ArtifactStore(Protocol):
    def load(self, curve: CurveStage, kind: str) -> ArtifactBundle: ...

    def store(self, curve: CurveStage, kind: str, bundle: ArtifactBundle) -> None: ...


# --- serialization ---


def verifying_key_to_cbor(vk: VerifyingKeyRecord) -> bytes:
    curve = vk.curve
    return cbor2.dumps(
        {
            "curve": curve.name,
            "alpha": curves.marshal_g1(curve, vk.alpha),
            "beta": curves.marshal_g2(curve, vk.beta),
            "gamma": curves.marshal_g2(curve, vk.gamma),
            "delta": curves.marshal_g2(curve, vk.delta),
            "ic": [curves.marshal_g1(curve, p) for p in vk.ic],
            "commitment_keys": [
                [curves.marshal_g2(curve, g), curves.marshal_g2(curve, s)] for g, s in vk.commitment_keys
            ],
        },
        canonical=True,
    )


def _vk_from_dict(data: dict, check_subgroup: bool) -> VerifyingKeyRecord:
    curve = curves.get_curve(data["curve"])

    def g1(raw):
        return curves.unmarshal_g1(curve, raw, check_subgroup)

    def g2(raw):
        return curves.unmarshal_g2(curve, raw, check_subgroup)

    return VerifyingKeyRecord(
        curve=curve,
        alpha=g1(data["alpha"]),
        beta=g2(data["beta"]),
        gamma=g2(data["gamma"]),
        delta=g2(data["delta"]),
        ic=tuple(g1(p) for p in data["ic"]),
        commitment_keys=tuple((g2(g), g2(s)) for g, s in data.get("commitment_keys", [])),
    )


def verifying_key_from_cbor(raw: bytes) -> VerifyingKeyRecord:
    return _vk_from_dict(cbor2.loads(raw), check_subgroup=True)


def proving_key_to_cbor(pk: ProvingKey) -> bytes:
    return cbor2.dumps(
        {
            "curve": pk.curve.name,
            "ccs_digest": pk.ccs_digest,
            "trapdoor": [pk.alpha, pk.beta, pk.gamma, pk.delta],
            "ic": list(pk.ic),
            "vk": cbor2.loads(verifying_key_to_cbor(pk.vk)),
        }
    )


def proving_key_from_cbor(raw: bytes) -> ProvingKey:
    """Load a proving key without subgroup checks on its points."""
    data = cbor2.loads(raw)
    alpha, beta, gamma, delta = data["trapdoor"]
    return ProvingKey(
        curve=curves.get_curve(data["curve"]),
        ccs_digest=data["ccs_digest"],
        alpha=alpha,
        beta=beta,
        gamma=gamma,
        delta=delta,
        ic=tuple(data["ic"]),
        vk=_vk_from_dict(data["vk"], check_subgroup=False),
    )


def constraint_system_to_cbor(ccs: ConstraintSystem) -> bytes:
    return cbor2.dumps(ccs.to_dict())


def constraint_system_from_cbor(raw: bytes) -> ConstraintSystem:
    return ConstraintSystem.from_dict(cbor2.loads(raw))


# --- stores ---


class FileArtifactStore:
    """
    Artifacts under `root`, one directory per curve and circuit kind.

    A bundle is staged whole in a hidden sibling directory and renamed into
    place, so a reader either finds no bundle or a complete one. An
    interrupted write leaves only the hidden staging directory behind.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def directory(self, curve: CurveStage, kind: str) -> Path:
        return self.root / curve.name / kind

    def paths(self, curve: CurveStage, kind: str) -> tuple[Path, Path, Path]:
        directory = self.directory(curve, kind)
        return (
            directory / CIRCUIT_FILE.format(kind=kind),
            directory / PROVING_KEY_FILE.format(kind=kind),
            directory / VERIFYING_KEY_FILE.format(kind=kind),
        )

    def load(self, curve: CurveStage, kind: str) -> ArtifactBundle:
        """
        Raises:
            ArtifactNotFound: If no constraint system exists for (curve, kind).
            ArtifactIOError: If any file is missing, unreadable or corrupt.
        """
        ccs_path, pk_path, vk_path = self.paths(curve, kind)
        if not ccs_path.exists():
            raise ArtifactNotFound(f"no {kind} circuit for {curve.name} under {self.root}")
        start = time.monotonic()
        try:
            ccs = constraint_system_from_cbor(ccs_path.read_bytes())
            pk = proving_key_from_cbor(pk_path.read_bytes())
            vk = verifying_key_from_cbor(vk_path.read_bytes())
        except (OSError, cbor2.CBORDecodeError, CodecError, KeyError, TypeError, ValueError) as e:
            raise ArtifactIOError(f"failed to load {kind} artifacts for {curve.name}: {e}") from e
        if ccs.curve != curve or pk.ccs_digest != ccs.digest():
            raise ArtifactIOError(f"{kind} artifacts for {curve.name} are inconsistent")
        logger.info("loaded %s artifacts for %s in %.3fs", kind, curve.name, time.monotonic() - start)
        return ArtifactBundle(ccs, pk, vk)

    def store(self, curve: CurveStage, kind: str, bundle: ArtifactBundle) -> None:
        """
        Raises:
            ArtifactExistsError: If a complete bundle is already published.
            ArtifactIOError: If the bundle can not be written.
        """
        target = self.directory(curve, kind)
        start = time.monotonic()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            stage = Path(tempfile.mkdtemp(prefix=f".{kind}.", suffix=".tmp", dir=target.parent))
        except OSError as e:
            raise ArtifactIOError(f"failed to store {kind} artifacts for {curve.name}: {e}") from e
        try:
            ccs_path, pk_path, vk_path = self.paths(curve, kind)
            write_exclusive(stage / pk_path.name, proving_key_to_cbor(bundle.pk))
            write_exclusive(stage / vk_path.name, verifying_key_to_cbor(bundle.vk))
            write_exclusive(stage / ccs_path.name, constraint_system_to_cbor(bundle.ccs))
            self._publish(stage, target, ccs_path)
        except OSError as e:
            raise ArtifactIOError(f"failed to store {kind} artifacts for {curve.name}: {e}") from e
        finally:
            shutil.rmtree(stage, ignore_errors=True)
        logger.info("stored %s artifacts for %s in %.3fs", kind, curve.name, time.monotonic() - start)

    def _publish(self, stage: Path, target: Path, ccs_path: Path) -> None:
        # rename(2) onto a non-empty directory fails, which makes it create-or-fail
        for _ in range(2):
            try:
                os.rename(stage, target)
                return
            except OSError as e:
                if e.errno not in (errno.EEXIST, errno.ENOTEMPTY):
                    raise
            if ccs_path.exists():
                raise ArtifactExistsError(f"artifacts already published at {target}")
            logger.warning("discarding incomplete artifacts at %s", target)
            self._discard(target)
        raise ArtifactIOError(f"could not publish artifacts at {target}")

    @staticmethod
    def _discard(target: Path) -> None:
        trash = Path(tempfile.mkdtemp(prefix=".discard.", suffix=".tmp", dir=target.parent))
        try:
            os.rename(target, trash / target.name)
        except FileNotFoundError:
            pass
        finally:
            shutil.rmtree(trash, ignore_errors=True)


class MemoryArtifactStore:
    """In-memory store, for tests."""

    def __init__(self):
        self._bundles: dict[tuple[str, str], ArtifactBundle] = {}
        self._lock = threading.Lock()

    def load(self, curve: CurveStage, kind: str) -> ArtifactBundle:
        with self._lock:
            bundle = self._bundles.get((curve.name, kind))
        if bundle is None:
            raise ArtifactNotFound(f"no {kind} circuit for {curve.name}")
        return bundle

    def store(self, curve: CurveStage, kind: str, bundle: ArtifactBundle) -> None:
        with self._lock:
            self._bundles[(curve.name, kind)] = bundle

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._bundles


def load_or_compile(
    store: ArtifactStore,
    backend: Backend,
    curve: CurveStage,
    kind: str,
    placeholder: Any,
) -> ArtifactBundle:
    """
    Load the (curve, kind) bundle, compiling and storing it only when it is
    not found. When another writer publishes first, its bundle is loaded.
    Any other failure propagates.
    """
    try:
        return store.load(curve, kind)
    except ArtifactNotFound:
        logger.info("no cached %s circuit for %s, compiling", kind, curve.name)
    ccs = backend.compile(curve, placeholder)
    pk, vk = backend.setup(ccs)
    bundle = ArtifactBundle(ccs, pk, vk)
    try:
        store.store(curve, kind, bundle)
    except ArtifactExistsError:
        logger.info("%s artifacts for %s were published concurrently, loading them", kind, curve.name)
        return store.load(curve, kind)
    return bundle
