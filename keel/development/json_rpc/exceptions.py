from typing import Any, Dict, Optional


class JsonRpcError(Exception):
    """
    Error object returned by a JSON-RPC endpoint.
    """

    __code: int
    __message: str
    __data: Optional[Any]

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"{message} (code {code})")
        self.__code = code
        self.__message = message
        self.__data = data

    @classmethod
    def from_dict(cls, error: Dict) -> "JsonRpcError":
        return cls(error.get("code", 0), error.get("message", ""), error.get("data"))

    @property
    def code(self) -> int:
        return self.__code

    @property
    def message(self) -> str:
        return self.__message

    @property
    def data(self) -> Optional[Any]:
        return self.__data
