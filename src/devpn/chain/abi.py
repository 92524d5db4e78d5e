"""
ABI helpers - Closed encoder for manual call-data construction.

Only ``address`` and ``uint256`` parameters are supported; anything else is
rejected with UnsupportedType. Function selectors are derived from
Keccak-256 of the canonical signature.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Sequence

from eth_hash.auto import keccak

UINT256_MAX = 2**256 - 1
WORD_HEX_LEN = 64

# The contract functions these tools are allowed to call.
CONTRACT_FUNCTIONS: frozenset[str] = frozenset(
    {
        "setRewardContract(address)",
        "initializeDistribution(address)",
        "createVestingSchedule(address,uint256,uint256,uint256,uint256)",
        "release(address)",
        "transfer(address,uint256)",
        "balanceOf(address)",
        "owner()",
        "token()",
    }
)

_SIGNATURE_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\(([^()]*)\)$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")

# Solidity shorthand types and their canonical names
_TYPE_ALIASES = {"uint": "uint256", "int": "int256"}


class AbiError(ValueError):
    """Raised when a value or signature cannot be ABI-encoded."""


class UnsupportedType(AbiError):
    """Raised for a parameter type outside the supported set."""


class UnknownSignature(AbiError):
    """Raised for a function signature outside CONTRACT_FUNCTIONS."""


def _strip_0x(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def encode_address(address: str) -> str:
    """
    Encode an address as a 32-byte word.

    Args:
        address: 20-byte address (40 hex digits), with or without 0x prefix

    Returns:
        64 lowercase hex characters, left-padded with zeros
    """
    addr = _strip_0x(str(address)).lower()
    if len(addr) != 40 or not _HEX_RE.match(addr):
        raise AbiError(f"Invalid address: {address!r}")
    return addr.rjust(WORD_HEX_LEN, "0")


def encode_uint256(value: int) -> str:
    """
    Encode a non-negative integer as a 32-byte word.

    Raises:
        AbiError: If value is not an int, is negative, or needs more than 256 bits
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise AbiError(f"uint256 expects an int, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise AbiError(f"uint256 out of range: {value}")
    return format(value, "x").rjust(WORD_HEX_LEN, "0")


def decode_address(word: str) -> str:
    """Decode the low 20 bytes of a 32-byte word into a 0x address."""
    raw = _strip_0x(word)
    if len(raw) < 40:
        raise AbiError(f"Word too short for an address: {word!r}")
    return "0x" + raw[-40:].lower()


def decode_uint256(word: str) -> int:
    raw = _strip_0x(word)
    if not raw:
        return 0
    if len(raw) > WORD_HEX_LEN or not _HEX_RE.match(raw):
        raise AbiError(f"Invalid uint256 word: {word!r}")
    return int(raw, 16)


class ParamType(Enum):
    """Supported Solidity parameter types."""

    ADDRESS = "address"
    UINT256 = "uint256"

    @classmethod
    def parse(cls, name: str) -> "ParamType":
        normalized = name.strip()
        normalized = _TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedType(f"Unsupported parameter type: {name}") from None

    def encode(self, value: Any) -> str:
        if self is ParamType.ADDRESS:
            return encode_address(value)
        return encode_uint256(value)

    def decode(self, word: str) -> Any:
        if self is ParamType.ADDRESS:
            return decode_address(word)
        return decode_uint256(word)


def parse_signature(signature: str) -> tuple[str, list[str]]:
    """
    Split a human-written signature into name and parameter types.

    Example:
        "transfer(address,uint256)" -> ("transfer", ["address", "uint256"])
    """
    match = _SIGNATURE_RE.match(signature.replace(" ", ""))
    if match is None:
        raise AbiError(f"Malformed function signature: {signature!r}")
    name, args = match.groups()
    types = [t for t in args.split(",") if t] if args else []
    return name, types


def canonical_signature(signature: str) -> str:
    name, types = parse_signature(signature)
    return f"{name}({','.join(ParamType.parse(t).value for t in types)})"


def function_selector(signature: str) -> str:
    """
    Compute the 4-byte selector of a function signature.

    Shorthand types ("uint") are expanded before hashing.

    Returns:
        8 lowercase hex characters (no 0x prefix)
    """
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    name, types = parse_signature(signature)
    canonical = f"{name}({','.join(_TYPE_ALIASES.get(t, t) for t in types)})"
    return keccak(canonical.encode("utf-8"))[:4].hex()


def encode_params(signature: str, values: Sequence[Any]) -> str:
    """
    Encode values positionally by the types declared in ``signature``.

    Returns:
        Concatenated 32-byte words as hex (no 0x prefix)
    """
    _, types = parse_signature(signature)
    param_types = [ParamType.parse(t) for t in types]
    if len(param_types) != len(values):
        raise AbiError(
            f"{signature} expects {len(param_types)} argument(s), got {len(values)}"
        )
    return "".join(t.encode(v) for t, v in zip(param_types, values))


def encode_call(signature: str, values: Sequence[Any] = ()) -> str:
    """
    Build 0x-prefixed call data for one of CONTRACT_FUNCTIONS.

    Raises:
        UnknownSignature: If the signature is not a known contract function
    """
    canonical = canonical_signature(signature)
    if canonical not in CONTRACT_FUNCTIONS:
        raise UnknownSignature(f"Unknown function signature: {signature}")
    return "0x" + function_selector(canonical) + encode_params(canonical, values)


def decode_words(data: str, types: Sequence[ParamType]) -> list[Any]:
    """Decode consecutive static words from eth_call return data."""
    raw = _strip_0x(data or "")
    if len(raw) < WORD_HEX_LEN * len(types):
        raise AbiError(
            f"Return data too short: {len(raw) // 2} bytes for {len(types)} word(s)"
        )
    return [
        t.decode(raw[i * WORD_HEX_LEN : (i + 1) * WORD_HEX_LEN])
        for i, t in enumerate(types)
    ]
