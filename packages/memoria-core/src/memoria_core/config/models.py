from typing import Literal

from pydantic import BaseModel, Field, field_validator


class LedgerSettings(BaseModel):
    admin: str = Field(default="admin", min_length=1)
    max_path_hops: int = Field(default=256, gt=0)

    @field_validator("admin")
    @classmethod
    def validate_admin(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("admin cannot be empty or whitespace")
        return v


class StorageConfig(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = ".memoria/ledger.db"


class MemoriaConfig(BaseModel):
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
