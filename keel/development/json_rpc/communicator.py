import itertools
import json
from typing import Any, List, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from keel.core import get_logger
from keel.utils import get_package_version

from .exceptions import JsonRpcError

logger = get_logger(__name__)


class JsonRpcCommunicator:
    """
    Sends JSON-RPC 2.0 requests over HTTP. A single instance may be shared by concurrent callers,
    every request is an independent POST with its own id.
    """

    __client_session: Optional[ClientSession]
    __owns_session: bool
    __url: str
    __timeout: float

    def __init__(
        self,
        url: str,
        timeout: float = 15,
        client_session: Optional[ClientSession] = None,
    ):
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URI: {url}")
        self.__url = url
        self.__timeout = timeout
        self.__client_session = client_session
        self.__owns_session = False
        self.__request_ids = itertools.count()

    async def __aenter__(self):
        if self.__client_session is None:
            self.__client_session = self.__new_session()
            self.__owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()

    async def close(self) -> None:
        if self.__owns_session and self.__client_session is not None:
            await self.__client_session.close()
            self.__client_session = None
            self.__owns_session = False

    @property
    def url(self) -> str:
        return self.__url

    @property
    def connected(self) -> bool:
        return self.__client_session is not None

    async def send_request(self, method_name: str, params: Optional[List] = None) -> Any:
        post_data = {
            "jsonrpc": "2.0",
            "method": method_name,
            "params": params if params is not None else [],
            "id": next(self.__request_ids),
        }
        logger.info(f"Sending request:\n{post_data}")

        if self.__client_session is not None:
            return await self.__post(self.__client_session, post_data)
        async with self.__new_session() as session:
            return await self.__post(session, post_data)

    def __new_session(self) -> ClientSession:
        return ClientSession(
            timeout=ClientTimeout(total=self.__timeout),
            headers={"User-Agent": f"keel/{get_package_version('keel')}"},
        )

    async def __post(self, session: ClientSession, post_data: dict) -> Any:
        async with session.post(
            self.__url, json=post_data, timeout=ClientTimeout(total=self.__timeout)
        ) as response:
            text = await response.text()
            logger.info(f"Received response:\n{text}")
            # 4xx responses still carry a JSON-RPC error object
            if response.status == 429 or response.status >= 500:
                response.raise_for_status()

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            raise aiohttp.ClientPayloadError(
                f"Invalid JSON-RPC response from {self.__url}: {text[:200]}"
            ) from None

        if "error" in data and data["error"] is not None:
            raise JsonRpcError.from_dict(data["error"])
        return data["result"]
