from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Union

from Crypto.PublicKey.ECC import EccKey
from Crypto.Signature import eddsa

from .primitive_types import PUBLIC_KEY_LENGTH, Address

SIGNATURE_LENGTH = 64


def _encode_point(key: EccKey) -> bytes:
    # RFC 8032 point encoding: little-endian y with the parity of x in the top bit
    x = int(key.pointQ.x)
    y = int(key.pointQ.y)
    return (y | ((x & 1) << 255)).to_bytes(PUBLIC_KEY_LENGTH, "little")


class Keypair:
    """
    Ed25519 signer identity. Keypair files use the `[64 integers]` JSON format,
    the first 32 bytes being the private seed and the last 32 the public key.
    """

    _seed: bytes
    _key: EccKey
    _address: Address

    def __init__(self, seed: bytes):
        if len(seed) != 32:
            raise ValueError("Keypair seed must be 32 bytes long")
        self._seed = bytes(seed)
        self._key = eddsa.import_private_key(self._seed)
        self._address = Address(_encode_point(self._key))

    def __repr__(self) -> str:
        return f"Keypair({str(self._address)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Keypair):
            return NotImplemented
        return self._seed == other._seed

    def __hash__(self) -> int:
        return hash(self._seed)

    @classmethod
    def generate(cls) -> Keypair:
        return cls(os.urandom(32))

    @classmethod
    def from_bytes(cls, data: bytes) -> Keypair:
        if len(data) != 64:
            raise ValueError("Keypair bytes must be 64 bytes long")
        keypair = cls(data[:32])
        if bytes(keypair.address) != data[32:]:
            raise ValueError("Public key does not match the private seed")
        return keypair

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> Keypair:
        data = json.loads(Path(path).read_text())
        if not isinstance(data, list):
            raise ValueError(f"Keypair file '{path}' must contain a JSON array")
        return cls.from_bytes(bytes(data))

    def to_bytes(self) -> bytes:
        return self._seed + bytes(self._address)

    def write_json_file(self, path: Union[str, Path]) -> None:
        Path(path).write_text(json.dumps(list(self.to_bytes())))

    @property
    def address(self) -> Address:
        return self._address

    def sign(self, message: bytes) -> bytes:
        return eddsa.new(self._key, "rfc8032").sign(message)


def verify_signature(address: Address, message: bytes, signature: bytes) -> bool:
    try:
        public_key = eddsa.import_public_key(bytes(address))
        eddsa.new(public_key, "rfc8032").verify(message, signature)
    except ValueError:
        return False
    return True
