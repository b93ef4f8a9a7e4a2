from .communicator import JsonRpcCommunicator
from .exceptions import JsonRpcError
