from typing import Optional

from pydantic import PrivateAttr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "TrustLend API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./trustlend.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Assessment economics
    assessment_fee: float = 0.5
    starting_credits: float = 10
    assessment_auto_process: bool = True

    # Trust-score gateway (OpenAI-compatible chat completions)
    nilai_api_key: Optional[str] = None
    nilai_base_url: str = "https://nilai-a779.nillion.network/v1"
    nilai_model: str = "google/gemma-3-27b-it"
    nilai_temperature: float = 0.3
    nilai_max_tokens: int = 1000

    # Document vision
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    vision_model: str = "gpt-4o-mini"
    vision_max_tokens: int = 4096

    llm_timeout_seconds: float = 120.0

    # Humanity score (Gitcoin Passport scorer)
    passport_api_key: Optional[str] = None
    passport_scorer_id: Optional[str] = None
    passport_base_url: str = "https://api.scorer.gitcoin.co"
    passport_passing_score: float = 1.0

    # Encrypted vault gateway
    vault_base_url: Optional[str] = None
    vault_api_key: Optional[str] = None
    vault_collection_id: str = "244fb43c-6366-48c2-b549-9dcdd3e74756"

    # Chain
    rpc_url: Optional[str] = None
    loan_contract_address: str = "0x0b82120940879662aadf043212644567e7416766"
    tx_confirmations: int = 2
    tx_poll_interval_seconds: float = 2.0
    tx_timeout_seconds: float = 600.0
    usd_to_eth_rate: float = 4100.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    _is_sqlite: bool = PrivateAttr(default=False)
    _is_postgresql: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)
        object.__setattr__(self, "_is_postgresql", "postgresql" in _scheme)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite

    @property
    def is_postgresql(self) -> bool:
        return self._is_postgresql

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
