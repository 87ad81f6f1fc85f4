import yaml
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from typing import Literal, Optional, Tuple, Type

SUI_FULLNODE_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}

DEFAULT_POLL_INTERVAL_MS = 5000
# Max page size accepted by suix_queryEvents
DEFAULT_PAGE_SIZE = 50


class ProcessorConfig(BaseModel):
    type: str


class SuiNFTMarketplaceConfig(ProcessorConfig):
    # Package that emits the marketplace events
    package_id: str = Field(min_length=1)
    # Shared Marketplace object created at publish time
    marketplace_id: str = Field(min_length=1)
    module_name: str = "marketplace"


class ServerConfig(BaseModel):
    processor_config: SuiNFTMarketplaceConfig
    db_connection_uri: str = Field(min_length=1)
    sui_network: Literal["mainnet", "testnet", "devnet", "localnet"] = "testnet"
    # Overrides the public fullnode picked from `sui_network`
    sui_rpc_url: Optional[str] = None
    poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=DEFAULT_PAGE_SIZE)
    request_timeout_secs: int = Field(default=30, gt=0)

    def get_rpc_url(self) -> str:
        if self.sui_rpc_url:
            return self.sui_rpc_url
        return SUI_FULLNODE_URLS[self.sui_network]


class Config(BaseSettings):
    # Used for k8s liveness and readiness probes
    health_check_port: int
    server_config: ServerConfig

    model_config = SettingsConfigDict(env_nested_delimiter="__")

    # change order of priority of settings sources such that environment variables take precedence over config file settings
    # inspired by https://docs.pydantic.dev/latest/concepts/pydantic_settings/#changing-priority
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, file_secret_settings

    @classmethod
    def from_yaml_file(cls, path: str):
        with open(path, "r") as file:
            config = yaml.safe_load(file)

        return cls(**config)
