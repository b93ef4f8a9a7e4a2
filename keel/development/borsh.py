"""
Minimal Borsh codec with the Anchor framework conventions on top of it.

Only the field types needed to describe account layouts and instruction
arguments of typical programs are supported. Decoded integers are always
Python `int` values of arbitrary precision, so no value is ever silently
converted to `float`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from .primitive_types import PUBLIC_KEY_LENGTH, Address, sha256

DISCRIMINATOR_LENGTH = 8

_int_re = re.compile(r"^(?P<sign>[ui])(?P<bits>8|16|32|64|128)$")

FIELD_TYPES = frozenset(
    [f"{s}{b}" for s in ("u", "i") for b in (8, 16, 32, 64, 128)]
    + ["bool", "pubkey", "string", "bytes"]
)


class AccountDecodeError(ValueError):
    pass


def _int_layout(type_: str) -> Optional[Tuple[int, bool]]:
    match = _int_re.match(type_)
    if match is None:
        return None
    return int(match.group("bits")) // 8, match.group("sign") == "i"


def check_type(type_: str) -> str:
    if type_ not in FIELD_TYPES:
        raise ValueError(f"Unsupported field type '{type_}'")
    return type_


def encode_value(type_: str, value: Any) -> bytes:
    int_layout = _int_layout(type_)
    if int_layout is not None:
        size, signed = int_layout
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int for {type_}, got {type(value).__name__}")
        try:
            return value.to_bytes(size, "little", signed=signed)
        except OverflowError:
            raise ValueError(f"Value {value} out of range for {type_}") from None
    elif type_ == "bool":
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool, got {type(value).__name__}")
        return b"\x01" if value else b"\x00"
    elif type_ == "pubkey":
        return bytes(Address(value))
    elif type_ == "string":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        encoded = value.encode("utf-8")
        return len(encoded).to_bytes(4, "little") + encoded
    elif type_ == "bytes":
        encoded = bytes(value)
        return len(encoded).to_bytes(4, "little") + encoded
    raise ValueError(f"Unsupported field type '{type_}'")


def decode_value(type_: str, data: bytes, offset: int) -> Tuple[Any, int]:
    def take(size: int) -> bytes:
        if offset + size > len(data):
            raise AccountDecodeError(
                f"Unexpected end of data while decoding {type_} at offset {offset}"
            )
        return data[offset : offset + size]

    int_layout = _int_layout(type_)
    if int_layout is not None:
        size, signed = int_layout
        return int.from_bytes(take(size), "little", signed=signed), offset + size
    elif type_ == "bool":
        raw = take(1)[0]
        if raw > 1:
            raise AccountDecodeError(f"Invalid bool value {raw} at offset {offset}")
        return raw == 1, offset + 1
    elif type_ == "pubkey":
        return Address(take(PUBLIC_KEY_LENGTH)), offset + PUBLIC_KEY_LENGTH
    elif type_ in {"string", "bytes"}:
        length = int.from_bytes(take(4), "little")
        offset += 4
        raw = take(length)
        if type_ == "bytes":
            return raw, offset + length
        try:
            return raw.decode("utf-8"), offset + length
        except UnicodeDecodeError as e:
            raise AccountDecodeError(f"Invalid UTF-8 string: {e}") from None
    raise ValueError(f"Unsupported field type '{type_}'")


def anchor_instruction_discriminator(name: str) -> bytes:
    return sha256(f"global:{name}".encode("utf-8"))[:DISCRIMINATOR_LENGTH]


def anchor_account_discriminator(name: str) -> bytes:
    return sha256(f"account:{name}".encode("utf-8"))[:DISCRIMINATOR_LENGTH]


def anchor_instruction_data(name: str, args: Sequence[Tuple[str, Any]] = ()) -> bytes:
    """
    Serialize an Anchor instruction call: 8-byte method discriminator followed by Borsh-encoded arguments.
    """
    return anchor_instruction_discriminator(name) + b"".join(
        encode_value(type_, value) for type_, value in args
    )


@dataclass(frozen=True)
class AccountSchema:
    """
    Layout of program account data. `fields` is an ordered sequence of `(name, type)` pairs.
    """

    name: str
    fields: Tuple[Tuple[str, str], ...]
    discriminator: Optional[bytes] = field(default=None)

    def __post_init__(self):
        names = set()
        for field_name, type_ in self.fields:
            check_type(type_)
            if field_name in names:
                raise ValueError(f"Duplicate field '{field_name}' in schema {self.name}")
            names.add(field_name)

    @classmethod
    def anchor(cls, name: str, fields: Sequence[Tuple[str, str]]) -> AccountSchema:
        return cls(name, tuple(fields), anchor_account_discriminator(name))

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def decode(self, data: bytes) -> Dict[str, Any]:
        offset = 0
        if self.discriminator is not None:
            if data[: len(self.discriminator)] != self.discriminator:
                raise AccountDecodeError(
                    f"Account data does not start with the {self.name} discriminator"
                )
            offset = len(self.discriminator)

        decoded = {}
        for field_name, type_ in self.fields:
            decoded[field_name], offset = decode_value(type_, data, offset)
        return decoded

    def encode(self, values: Dict[str, Any]) -> bytes:
        out = self.discriminator or b""
        for field_name, type_ in self.fields:
            out += encode_value(type_, values[field_name])
        return out
