from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from riptide.assumptions import SchemaAssumptions, parse_assumptions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Generation
    assumptions: str = Field(default="all", alias="RIPTIDE_ASSUMPTIONS")  # all|none|name,name
    format_output: bool = Field(default=True, alias="RIPTIDE_FORMAT_OUTPUT")
    api_version: str = Field(default="1.0.0", alias="RIPTIDE_API_VERSION")

    # Remote introspection
    http_timeout: float = Field(default=30.0, alias="RIPTIDE_HTTP_TIMEOUT")

    # Serving
    server_host: str = Field(default="127.0.0.1", alias="RIPTIDE_SERVER_HOST")
    server_port: int = Field(default=8080, alias="RIPTIDE_SERVER_PORT")
    autoreload: bool = Field(default=False, alias="RIPTIDE_AUTORELOAD")

    log_level: str = Field(default="WARNING", alias="RIPTIDE_LOG_LEVEL")

    @property
    def resolved_assumptions(self) -> SchemaAssumptions:
        return parse_assumptions(self.assumptions)
