from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from keel.config import KeelConfig
from keel.core import get_logger
from keel.core.enums import Commitment

from .json_rpc.communicator import JsonRpcCommunicator
from .primitive_types import Address

logger = get_logger(__name__)


@dataclass(frozen=True)
class BlockhashInfo:
    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class AccountInfo:
    lamports: int
    owner: Address
    data: bytes
    executable: bool = False


@dataclass(frozen=True)
class SignatureStatus:
    slot: int
    confirmation_status: Optional[Commitment]
    err: Optional[Any] = None


class ChainInterfaceAbc(ABC):
    """
    The narrow set of network capabilities the harness depends on.
    Implementations must not keep per-call mutable state so that a single instance
    can be shared by concurrently running scenarios.
    """

    @abstractmethod
    async def get_latest_blockhash(
        self, commitment: Commitment = Commitment.CONFIRMED
    ) -> BlockhashInfo:
        ...

    @abstractmethod
    async def get_account_info(
        self, address: Address, commitment: Commitment = Commitment.CONFIRMED
    ) -> Optional[AccountInfo]:
        ...

    @abstractmethod
    async def send_raw_transaction(
        self,
        raw: bytes,
        *,
        skip_preflight: bool = False,
        preflight_commitment: Commitment = Commitment.PROCESSED,
    ) -> str:
        ...

    @abstractmethod
    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        ...

    @abstractmethod
    async def get_block_height(
        self, commitment: Commitment = Commitment.CONFIRMED
    ) -> int:
        ...

    @abstractmethod
    async def get_transaction_logs(self, signature: str) -> Optional[List[str]]:
        """
        Returns:
            Program log lines, or `None` while the transaction is not yet retrievable.
        """
        ...

    @abstractmethod
    async def request_airdrop(self, address: Address, lamports: int) -> str:
        ...

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()


class RpcChainInterface(ChainInterfaceAbc):
    _communicator: JsonRpcCommunicator

    def __init__(self, communicator: JsonRpcCommunicator):
        self._communicator = communicator

    @classmethod
    def connect(cls, config: KeelConfig, uri: Optional[str] = None) -> RpcChainInterface:
        communicator = JsonRpcCommunicator(
            uri if uri is not None else config.general.rpc_url,
            config.general.json_rpc_timeout,
        )
        return cls(communicator)

    async def __aenter__(self):
        await self._communicator.__aenter__()
        return self

    async def close(self) -> None:
        await self._communicator.close()

    @property
    def url(self) -> str:
        return self._communicator.url

    async def get_latest_blockhash(
        self, commitment: Commitment = Commitment.CONFIRMED
    ) -> BlockhashInfo:
        response = await self._communicator.send_request(
            "getLatestBlockhash", [{"commitment": str(commitment)}]
        )
        value = response["value"]
        return BlockhashInfo(value["blockhash"], value["lastValidBlockHeight"])

    async def get_account_info(
        self, address: Address, commitment: Commitment = Commitment.CONFIRMED
    ) -> Optional[AccountInfo]:
        response = await self._communicator.send_request(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": str(commitment)}],
        )
        value = response["value"]
        if value is None:
            return None
        data, encoding = value["data"]
        if encoding != "base64":
            raise ValueError(f"Unexpected account data encoding '{encoding}'")
        return AccountInfo(
            lamports=value["lamports"],
            owner=Address(value["owner"]),
            data=base64.b64decode(data),
            executable=value.get("executable", False),
        )

    async def send_raw_transaction(
        self,
        raw: bytes,
        *,
        skip_preflight: bool = False,
        preflight_commitment: Commitment = Commitment.PROCESSED,
    ) -> str:
        return await self._communicator.send_request(
            "sendTransaction",
            [
                base64.b64encode(raw).decode("ascii"),
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": str(preflight_commitment),
                    # retries are driven by the harness, not by the RPC node
                    "maxRetries": 0,
                },
            ],
        )

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        response = await self._communicator.send_request(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        value: Optional[Dict] = response["value"][0]
        if value is None:
            return None
        status = value.get("confirmationStatus")
        return SignatureStatus(
            slot=value["slot"],
            confirmation_status=Commitment(status) if status is not None else None,
            err=value.get("err"),
        )

    async def get_block_height(
        self, commitment: Commitment = Commitment.CONFIRMED
    ) -> int:
        return await self._communicator.send_request(
            "getBlockHeight", [{"commitment": str(commitment)}]
        )

    async def get_transaction_logs(self, signature: str) -> Optional[List[str]]:
        response = await self._communicator.send_request(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": str(Commitment.CONFIRMED),
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if response is None:
            return None
        meta = response.get("meta") or {}
        return list(meta.get("logMessages") or [])

    async def request_airdrop(self, address: Address, lamports: int) -> str:
        return await self._communicator.send_request(
            "requestAirdrop", [str(address), lamports]
        )
