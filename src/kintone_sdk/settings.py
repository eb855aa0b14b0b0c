"""Application settings (env/.env)."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Credentials


class Settings(BaseSettings):
    """Settings for the Kintone client and the MCP host."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    kintone_domain: str = Field(alias="KINTONE_DOMAIN", min_length=1)
    kintone_app_id: str | None = Field(default=None, alias="KINTONE_APP_ID")
    kintone_api_token: str | None = Field(default=None, alias="KINTONE_API_TOKEN")
    kintone_login_name: str | None = Field(default=None, alias="KINTONE_LOGIN_NAME")
    kintone_password: str | None = Field(default=None, alias="KINTONE_PASSWORD")
    kintone_basic_auth_user: str | None = Field(default=None, alias="KINTONE_BASIC_AUTH_USER")
    kintone_basic_auth_password: str | None = Field(
        default=None, alias="KINTONE_BASIC_AUTH_PASSWORD"
    )

    mcp_api_key: str = Field(default="", alias="MCP_API_KEY")
    mcp_host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    mcp_port: int = Field(default=5005, alias="MCP_PORT", ge=1, le=65535)

    http_timeout_seconds: float = Field(
        default=15.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
    )
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    def credentials(self) -> Credentials:
        return Credentials(
            domain=self.kintone_domain,
            app=self.kintone_app_id,
            token=self.kintone_api_token,
            login_name=self.kintone_login_name,
            password=self.kintone_password,
            basic_auth_user=self.kintone_basic_auth_user,
            basic_auth_password=self.kintone_basic_auth_password,
        )
