from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise the derivation path so device invocations never see blanks."""

        super().model_post_init(__context)

        if not self.signer_derivation_path.strip():
            object.__setattr__(self, "signer_derivation_path", "m/44'/60'/0'/0/0")

    log_level: str = Field(default="INFO", description="Logging level")

    # Run mode
    dry_run: Optional[bool] = Field(
        default=None,
        description="Fallback override for simulation mode when the host cannot report it",
        validation_alias=AliasChoices("dry_run", "DRY_RUN", "SAFEFLOW_DRY_RUN"),
    )
    debug_bypass: bool = Field(
        default=False,
        description="Call targets directly as the account to surface inner revert reasons",
        validation_alias=AliasChoices("debug_bypass", "DEBUG_BYPASS", "SAFEFLOW_DEBUG_BYPASS"),
    )

    # Coordination service
    safe_service_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for proposal submission",
    )

    # Signing
    signer_executable: str = Field(default="cast", description="External signer binary")
    signer_device: Literal["ledger", "trezor"] = Field(
        default="ledger",
        description="Hardware device kind passed to the external signer",
    )
    signer_derivation_path: str = Field(
        default="m/44'/60'/0'/0/0",
        description="HD derivation path used by the hardware device",
    )
    signer_mode: Literal["hash", "typed_data"] = Field(
        default="hash",
        description="Sign the raw digest or the structured transaction description",
    )
    private_key: str = Field(default="", description="Hex private key for local signing")

    # Chain state
    rpc_url: str = Field(
        default="http://127.0.0.1:8545",
        description="JSON-RPC endpoint of the local dev node used for simulation",
    )

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key)


settings = Settings()
