"""Operation descriptors and value normalization for contract-deployer library."""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from eth_utils import is_hex, is_hex_address

from .exceptions import InvalidOperationError

_DECIMAL = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Operation:
    """A contract function invocation: function name plus positional arguments."""

    name: str
    args: Tuple[Any, ...] = ()

    def describe(self) -> str:
        """Render as ``name(arg1,arg2)``, the form used for owner action keys."""
        return f"{self.name}({','.join(format_arg(a) for a in self.args)})"


def find_function(abi: List[Dict[str, Any]], name: str, arity: int) -> Dict[str, Any]:
    """
    Look up a function ABI entry by name and argument count.

    Raises:
        InvalidOperationError: If no function with that name and arity exists
    """
    candidates = [
        item
        for item in abi
        if item.get("type", "function") == "function" and item.get("name") == name
    ]
    for item in candidates:
        if len(item.get("inputs", [])) == arity:
            return item

    if candidates:
        arities = sorted(len(item.get("inputs", [])) for item in candidates)
        raise InvalidOperationError(
            f"Function '{name}' takes {arities} argument(s), {arity} given"
        )
    raise InvalidOperationError(f"Function '{name}' not found in ABI")


def bind(operation: Operation, abi: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Check an operation against an ABI, returning the matching function entry."""
    return find_function(abi, operation.name, len(operation.args))


def format_arg(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(format_arg(v) for v in value) + "]"
    return str(value)


def normalize_value(value: Any) -> Any:
    """
    Normalize a chain value so equal values compare equal regardless of formatting.

    - addresses: lowercased
    - ints, signed decimal strings and 0x hex quantities: int
    - bytes: big-endian int, so they match the same value given as 0x hex
    - lists/tuples: tuple of normalized items
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(bytes(value), "big")
    if isinstance(value, str):
        text = value.strip()
        if is_hex_address(text):
            return text.lower()
        if _DECIMAL.fullmatch(text):
            return int(text)
        if is_hex(text) and text[:2].lower() == "0x":
            if len(text) == 2:
                return 0
            return int(text, 16)
        return text
    if isinstance(value, (list, tuple)):
        return tuple(normalize_value(v) for v in value)
    if isinstance(value, dict):
        return {k: normalize_value(v) for k, v in value.items()}
    return value


def values_equal(a: Any, b: Any) -> bool:
    return normalize_value(a) == normalize_value(b)


def expect_equal(expected: Any) -> Callable[[Any], bool]:
    """Predicate that holds when a read result equals ``expected`` after normalization."""

    def predicate(result: Any) -> bool:
        return values_equal(result, expected)

    return predicate
