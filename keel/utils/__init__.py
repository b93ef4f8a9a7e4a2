from .base58 import b58decode, b58encode
from .context_managers import change_cwd
from .enums import StrEnum
from .version import get_package_version
