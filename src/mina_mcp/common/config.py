"""
Configuration loader for the Mina MCP server.

Loads settings from config.yaml. Environment variables are used ONLY for the
Blockberry secret and the optional base URL override. Never log secrets.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_BLOCKBERRY_API_BASE = "https://api.blockberry.one/mina-mainnet/v1/zkapps"


class BlockberryConfig(BaseModel):
    """Configuration for the Blockberry explorer API."""

    api_key: str = Field(default="", description="Blockberry API key (secret)")
    base_url: str = Field(
        default=DEFAULT_BLOCKBERRY_API_BASE, description="Base URL of the zkApp endpoints"
    )
    request_timeout: float = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = Field(default="mina-mcp-server/1.0", description="User-Agent header")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class ServerConfig(BaseModel):
    """Identity the MCP server reports during initialize."""

    name: str = Field(default="mina-blockchain", description="Server name")
    version: str = Field(default="1.0.0", description="Server version")


class Config(BaseModel):
    """Main configuration object."""

    blockberry: BlockberryConfig = Field(default_factory=BlockberryConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = Field(default="INFO", description="Logging level")
    enable_pretty_print: bool = Field(
        default=False, description="Enable custom pretty print for debugging"
    )
    save_to_file: bool = Field(default=False, description="Save logs to file")
    log_file_path: str = Field(default="server.log", description="Log file path (relative to root)")
    max_log_file_size: int = Field(
        default=10485760, description="Max log file size in bytes (10MB)"
    )
    backup_count: int = Field(default=5, description="Number of backup log files to keep")


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file and environment.

    Args:
        config_path: Path to config.yaml file. Defaults to ./config.yaml

    Returns:
        Loaded configuration object
    """
    if config_path is None:
        config_path = Path("config.yaml")

    config_data: Dict[str, Any] = {}

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    # Flatten the nested logging block onto the top-level fields
    if "logging" in config_data:
        logging_config = config_data.pop("logging") or {}
        if "level" in logging_config:
            config_data["log_level"] = logging_config["level"]
        for key in (
            "enable_pretty_print",
            "save_to_file",
            "log_file_path",
            "max_log_file_size",
            "backup_count",
        ):
            if key in logging_config:
                config_data[key] = logging_config[key]

    blockberry_data = dict(config_data.get("blockberry") or {})

    # The API key is a secret and only ever comes from the environment
    api_key = os.getenv("BLOCKBERRY_API_KEY")
    if api_key:
        blockberry_data["api_key"] = api_key

    base_url = os.getenv("BLOCKBERRY_API_BASE")
    if base_url:
        blockberry_data["base_url"] = base_url

    config_data["blockberry"] = blockberry_data

    return Config(**config_data)


def apply_overrides(
    config: Config,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Config:
    """Return a copy of the config with command-line overrides applied."""
    blockberry_updates: Dict[str, Any] = {}
    if api_key:
        blockberry_updates["api_key"] = api_key
    if base_url:
        blockberry_updates["base_url"] = base_url

    updates: Dict[str, Any] = {}
    if blockberry_updates:
        updates["blockberry"] = config.blockberry.model_copy(update=blockberry_updates)
    if log_level:
        updates["log_level"] = log_level

    return config.model_copy(update=updates)
