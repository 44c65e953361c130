# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# frontend.py

"""
The in-process circuit layer.

A circuit is a dataclass with a ``define(api)`` method. Its fields are tagged
with `public()`, `secret()` or `constant()`. Values nested inside a field
(lists, registered value dataclasses) inherit the field's tag, except that
any value with a true ``is_constant`` attribute is a constant, as are bool
and str leaves.

Integer leaves are circuit variables. A placeholder circuit holds None in
every variable leaf; an assignment holds integers.

Two `API` implementations run the same ``define``:

    CompileAPI  counts constraints, unknown values are None
    SolveAPI    evaluates modulo the scalar field, raises ConstraintNotSatisfied
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from snarkbridge import hashing
from snarkbridge.curves import CurveStage
from snarkbridge.errors import CompileError, ConstraintNotSatisfied, ShapeMismatchError

logger = logging.getLogger(__name__)

PUBLIC = "public"
SECRET = "secret"
CONSTANT = "constant"

_VISIBILITY = "visibility"
_TYPE_KEY = "__type__"
_REGISTRY: dict[str, type] = {}


def public(**kwargs):
    return field(metadata={_VISIBILITY: PUBLIC}, **_with_default(kwargs))


def secret(**kwargs):
    return field(metadata={_VISIBILITY: SECRET}, **_with_default(kwargs))


def constant(**kwargs):
    return field(metadata={_VISIBILITY: CONSTANT}, **_with_default(kwargs))


def _with_default(kwargs: dict) -> dict:
    if "default" not in kwargs and "default_factory" not in kwargs:
        kwargs["default"] = None
    return kwargs


def register(cls):
    """Class decorator making a dataclass encodable in circuit templates."""
    _REGISTRY[cls.__name__] = cls
    return cls


class Circuit:
    """Base class for circuits; subclasses are registered dataclasses."""

    def define(self, api: "API") -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Leaf:
    path: str
    visibility: str
    value: Any


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _child_visibility(obj: Any, f: dataclasses.Field, inherited: str) -> str:
    if inherited == CONSTANT:
        return CONSTANT
    return f.metadata.get(_VISIBILITY, inherited)


def _is_constant_value(value: Any) -> bool:
    return bool(getattr(value, "is_constant", False))


def _walk(value: Any, visibility: str, path: str) -> Iterator[Leaf]:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if _is_constant_value(value):
            visibility = CONSTANT
        for f in dataclasses.fields(value):
            yield from _walk(
                getattr(value, f.name), _child_visibility(value, f, visibility), _join(path, f.name)
            )
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            yield from _walk(item, visibility, f"{path}[{i}]")
    elif isinstance(value, (bool, str)):
        yield Leaf(path, CONSTANT, value)
    elif value is None or isinstance(value, int):
        yield Leaf(path, visibility, value)
    else:
        raise TypeError(f"unsupported circuit value at {path or '<root>'}: {type(value).__name__}")


def leaves(circuit: Any) -> list[Leaf]:
    """All leaves of `circuit` in declaration order, with their visibility."""
    return list(_walk(circuit, SECRET, ""))


def _map(value: Any, visibility: str, path: str, fn: Callable[[Leaf], Any]) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if _is_constant_value(value):
            visibility = CONSTANT
        kwargs = {
            f.name: _map(
                getattr(value, f.name), _child_visibility(value, f, visibility), _join(path, f.name), fn
            )
            for f in dataclasses.fields(value)
        }
        return type(value)(**kwargs)
    if isinstance(value, (list, tuple)):
        return [_map(item, visibility, f"{path}[{i}]", fn) for i, item in enumerate(value)]
    if isinstance(value, (bool, str)):
        return value
    return fn(Leaf(path, visibility, value))


def map_leaves(circuit: Any, fn: Callable[[Leaf], Any]) -> Any:
    """Rebuild `circuit` with every variable leaf replaced by ``fn(leaf)``."""
    return _map(circuit, SECRET, "", fn)


def blank(circuit: Any) -> Any:
    """Copy of `circuit` with every non-constant leaf set to None."""
    return map_leaves(circuit, lambda leaf: leaf.value if leaf.visibility == CONSTANT else None)


def witness_values(circuit: Any, modulus: int) -> tuple[list[int], list[int]]:
    """
    Collect (public, secret) values of an assignment in declaration order.

    Raises:
        ShapeMismatchError: If a variable leaf is unassigned.
    """
    pub, sec = [], []
    for leaf in leaves(circuit):
        if leaf.visibility == CONSTANT:
            continue
        if leaf.value is None:
            raise ShapeMismatchError(f"{leaf.path}: variable is not assigned")
        (pub if leaf.visibility == PUBLIC else sec).append(leaf.value % modulus)
    return pub, sec


def fill(template: Any, public_values, secret_values) -> Any:
    """
    Instantiate `template` with witness values, keeping its constants.

    Raises:
        ShapeMismatchError: If the number of values differs from the number
            of variable leaves of each visibility.
    """
    pub, sec = iter(public_values), iter(secret_values)
    missing = object()

    def take(leaf: Leaf):
        if leaf.visibility == CONSTANT:
            return leaf.value
        value = next(pub if leaf.visibility == PUBLIC else sec, missing)
        if value is missing:
            raise ShapeMismatchError(f"{leaf.path}: witness has too few {leaf.visibility} values")
        return value

    out = map_leaves(template, take)
    if next(pub, missing) is not missing or next(sec, missing) is not missing:
        raise ShapeMismatchError("witness has more values than the circuit has variables")
    return out


def check_tree_shape(placeholder: Any, assignment: Any, path: str = "") -> None:
    """
    Assert that two circuit values have the same structure.

    Raises:
        ShapeMismatchError: Naming the first path where they differ.
    """
    where = path or "<root>"
    if dataclasses.is_dataclass(placeholder) and not isinstance(placeholder, type):
        if type(placeholder) is not type(assignment):
            raise ShapeMismatchError(
                f"{where}: expected {type(placeholder).__name__}, got {type(assignment).__name__}"
            )
        for f in dataclasses.fields(placeholder):
            check_tree_shape(
                getattr(placeholder, f.name), getattr(assignment, f.name), _join(path, f.name)
            )
    elif isinstance(placeholder, (list, tuple)):
        if not isinstance(assignment, (list, tuple)):
            raise ShapeMismatchError(f"{where}: expected a list, got {type(assignment).__name__}")
        if len(placeholder) != len(assignment):
            raise ShapeMismatchError(
                f"{where}: expected {len(placeholder)} entries, got {len(assignment)}"
            )
        for i, (p, a) in enumerate(zip(placeholder, assignment)):
            check_tree_shape(p, a, f"{path}[{i}]")
    elif isinstance(placeholder, (bool, str)):
        if placeholder != assignment:
            raise ShapeMismatchError(f"{where}: expected {placeholder!r}, got {assignment!r}")
    else:
        if assignment is not None and (isinstance(assignment, bool) or not isinstance(assignment, int)):
            raise ShapeMismatchError(f"{where}: expected a field element, got {type(assignment).__name__}")


def encode_tree(value: Any) -> Any:
    """Encode a circuit value as plain lists, dicts and scalars."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        name = type(value).__name__
        if _REGISTRY.get(name) is not type(value):
            raise TypeError(f"{name} is not a registered circuit type")
        out = {_TYPE_KEY: name}
        for f in dataclasses.fields(value):
            out[f.name] = encode_tree(getattr(value, f.name))
        return out
    if isinstance(value, (list, tuple)):
        return [encode_tree(v) for v in value]
    return value


def decode_tree(data: Any) -> Any:
    """
    Inverse of `encode_tree`.

    Raises:
        ValueError: On an unknown type name.
    """
    if isinstance(data, dict):
        name = data.get(_TYPE_KEY)
        if name not in _REGISTRY:
            raise ValueError(f"unknown circuit type {name!r}")
        kwargs = {k: decode_tree(v) for k, v in data.items() if k != _TYPE_KEY}
        return _REGISTRY[name](**kwargs)
    if isinstance(data, list):
        return [decode_tree(v) for v in data]
    return data


def _mimc_round_cost(exponent: int) -> int:
    # square-and-multiply
    return exponent.bit_length() - 1 + bin(exponent).count("1") - 1


class Hasher:
    """In-circuit MiMC, same digest as `hashing.MiMC`."""

    def __init__(self, api: "API"):
        self.api = api
        self.data: list = []

    def write(self, *values) -> None:
        self.data.extend(values)

    def sum(self):
        return self.api.hash(self.data)


class API:
    """Shared surface of the compile and solve APIs."""

    solving = False

    def __init__(self, curve: CurveStage):
        self.curve = curve
        self.modulus = curve.scalar_field

    def new_hasher(self) -> Hasher:
        return Hasher(self)

    def println(self, *args) -> None:
        logger.debug("circuit %s: %s", self.curve.name, " ".join(str(a) for a in args))


class CompileAPI(API):
    """
    Trace a circuit over unknown values and count its constraints.

    Known values (constants) fold without cost; an operation on None yields
    None.
    """

    def __init__(self, curve: CurveStage):
        super().__init__(curve)
        self.nb_constraints = 0

    def add_constraints(self, count: int, label: str = "") -> None:
        self.nb_constraints += count
        if label:
            logger.debug("%s: +%d constraints", label, count)

    def add(self, *values):
        if any(v is None for v in values):
            return None
        return sum(values) % self.modulus

    def sub(self, a, b):
        if a is None or b is None:
            return None
        return (a - b) % self.modulus

    def mul(self, a, b):
        if a is None and b is None:
            self.nb_constraints += 1
            return None
        if a is None or b is None:
            return None
        return (a * b) % self.modulus

    def select(self, cond, a, b):
        if cond is None:
            self.nb_constraints += 1
            return None
        return a if cond else b

    def to_binary(self, value, n_bits: int) -> list:
        if value is None:
            self.nb_constraints += n_bits + 1
            return [None] * n_bits
        if value >> n_bits:
            raise CompileError(f"constant {value} does not fit in {n_bits} bits")
        return [(value >> i) & 1 for i in range(n_bits)]

    def assert_is_equal(self, a, b) -> None:
        if a is None or b is None:
            self.nb_constraints += 1
        elif (a - b) % self.modulus:
            raise CompileError(f"constant assertion {a} == {b} can never hold")

    def assert_is_different(self, a, b) -> None:
        if a is None or b is None:
            self.nb_constraints += 2
        elif (a - b) % self.modulus == 0:
            raise CompileError(f"constant assertion {a} != {b} can never hold")

    def assert_is_boolean(self, v) -> None:
        if v is None:
            self.nb_constraints += 1
        elif v not in (0, 1):
            raise CompileError(f"constant {v} is not boolean")

    def hash(self, values):
        if any(v is None for v in values):
            rounds = hashing.mimc_rounds(self.curve)
            cost = len(values) * rounds * _mimc_round_cost(self.curve.mimc_exponent)
            self.add_constraints(cost, f"mimc over {len(values)} elements")
            return None
        return hashing.mimc_hash(self.curve, values)


class SolveAPI(API):
    """Evaluate a circuit over an assignment, failing on the first violated constraint."""

    solving = True

    def add_constraints(self, count: int, label: str = "") -> None:
        pass

    def add(self, *values):
        return sum(values) % self.modulus

    def sub(self, a, b):
        return (a - b) % self.modulus

    def mul(self, a, b):
        return (a * b) % self.modulus

    def select(self, cond, a, b):
        self.assert_is_boolean(cond)
        return a if cond % self.modulus else b

    def to_binary(self, value, n_bits: int) -> list:
        value %= self.modulus
        if value >> n_bits:
            raise ConstraintNotSatisfied(f"{value} does not fit in {n_bits} bits")
        return [(value >> i) & 1 for i in range(n_bits)]

    def assert_is_equal(self, a, b) -> None:
        if (a - b) % self.modulus:
            raise ConstraintNotSatisfied(f"{a % self.modulus} == {b % self.modulus}")

    def assert_is_different(self, a, b) -> None:
        if (a - b) % self.modulus == 0:
            raise ConstraintNotSatisfied(f"{a % self.modulus} != {b % self.modulus}")

    def assert_is_boolean(self, v) -> None:
        if v % self.modulus not in (0, 1):
            raise ConstraintNotSatisfied(f"{v % self.modulus} is not boolean")

    def hash(self, values):
        return hashing.mimc_hash(self.curve, values)
