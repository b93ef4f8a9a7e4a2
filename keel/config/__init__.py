from .keel_config import KeelConfig, UnsupportedPlatformError
