from __future__ import annotations

from typing import Union

from Crypto.Hash import SHA256
from Crypto.Signature import eddsa

from keel.utils import b58decode, b58encode

PUBLIC_KEY_LENGTH = 32


def sha256(*data: bytes) -> bytes:
    h = SHA256.new()
    for chunk in data:
        h.update(chunk)
    return h.digest()


def is_on_curve(data: bytes) -> bool:
    """
    Returns `True` if the given 32 bytes decode to a point on the ed25519 curve,
    i.e. a public key that may have a corresponding private key.
    """
    if len(data) != PUBLIC_KEY_LENGTH:
        return False
    try:
        eddsa.import_public_key(data)
    except ValueError:
        return False
    return True


class Address:
    """
    32-byte public key of an account or a program. Rendered in base58.
    """

    __slots__ = ("_bytes",)

    _bytes: bytes

    def __init__(self, value: Union[str, bytes, bytearray, Address]):
        if isinstance(value, Address):
            raw = value._bytes
        elif isinstance(value, (bytes, bytearray)):
            raw = bytes(value)
        elif isinstance(value, str):
            try:
                raw = b58decode(value)
            except ValueError as e:
                raise ValueError(f"Invalid address '{value}': {e}") from None
        else:
            raise TypeError(f"Cannot create an address from {type(value).__name__}")

        if len(raw) != PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"Address must be {PUBLIC_KEY_LENGTH} bytes long, got {len(raw)}"
            )
        self._bytes = raw

    def __str__(self) -> str:
        return b58encode(self._bytes)

    def __repr__(self) -> str:
        return f"Address({str(self)!r})"

    def __bytes__(self) -> bytes:
        return self._bytes

    def __eq__(self, other) -> bool:
        if isinstance(other, Address):
            return self._bytes == other._bytes
        elif isinstance(other, str):
            return str(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._bytes)

    def __lt__(self, other: Address) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._bytes < other._bytes

    @property
    def is_on_curve(self) -> bool:
        return is_on_curve(self._bytes)

    @classmethod
    def zero(cls) -> Address:
        return cls(bytes(PUBLIC_KEY_LENGTH))
