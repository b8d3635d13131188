from .loader import load_config
from .models import LedgerSettings, MemoriaConfig, StorageConfig

__all__ = [
    "LedgerSettings",
    "MemoriaConfig",
    "StorageConfig",
    "load_config",
]
