from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "DA_", "env_file": ".env", "env_file_encoding": "utf-8"}

    llm_provider: str = Field(default="groq", pattern=r"^(openai|anthropic|groq)$")
    llm_model: str = Field(default="llama3-70b-8192")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=1500, gt=0)
    openai_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")
    groq_api_key: str = Field(default="")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1")

    rpc_url: str = Field(default="")
    alchemy_api_key: str = Field(default="")
    etherscan_api_key: str = Field(default="")
    etherscan_base_url: str = Field(default="https://api.etherscan.io/v2/api")
    defillama_yields_url: str = Field(default="https://yields.llama.fi/pools")

    price_timeout_seconds: float = Field(default=8.0, gt=0)
    history_timeout_seconds: float = Field(default=10.0, gt=0)
    protocol_timeout_seconds: float = Field(default=20.0, gt=0)
    wallet_timeout_seconds: float = Field(default=15.0, gt=0)
    llm_timeout_seconds: float = Field(default=30.0, gt=0)
    request_timeout_seconds: float = Field(default=50.0, gt=0)

    cache_ttl_seconds: int = Field(default=60, ge=1)
    cache_max_entries: int = Field(default=256, ge=1)

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def resolved_rpc_url(self) -> str:
        if self.rpc_url:
            return self.rpc_url
        if self.alchemy_api_key:
            return f"https://eth-mainnet.g.alchemy.com/v2/{self.alchemy_api_key}"
        return "https://cloudflare-eth.com"


settings = Settings()
