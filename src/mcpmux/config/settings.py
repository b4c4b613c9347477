"""
Settings models for mcpmux.
"""

import copy
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_CONFIG_FILE = "mcpmux.config.yaml"
ENV_PREFIX = "MCPMUX_"
DEFAULT_TIMEOUT_SECONDS = 60.0


class ServerStatus(str, Enum):
    """Lifecycle status of a registered server."""

    ACTIVATE = "activate"
    ERROR = "error"
    DISABLED = "disabled"


class ServerType(str, Enum):
    """Transport used to reach a server."""

    BUILTIN = "builtin"
    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable-http"


class MCPFilterConfig(BaseModel):
    """Glob patterns deciding which tool or prompt names are exposed."""

    allow: Optional[List[str]] = None
    block: Optional[List[str]] = None


class MCPFilters(BaseModel):
    """Settings for tool and prompt filtering."""

    tools: Optional[MCPFilterConfig] = None
    prompts: Optional[MCPFilterConfig] = None


class MCPServerSettings(BaseModel):
    """Settings for an MCP server."""

    name: str
    type: Optional[ServerType] = None
    status: ServerStatus = ServerStatus.ACTIVATE
    description: Optional[str] = None
    timeout: Optional[float] = None
    filters: Optional[MCPFilters] = None

    # stdio
    command: Optional[str] = None
    args: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None
    cwd: Optional[str] = None

    # sse / streamable-http
    url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None

    # builtin: a FastMCP or low-level mcp Server instance
    mcp_server: Optional[Any] = Field(default=None, exclude=True)

    read_timeout_seconds: Optional[int] = None

    model_config = {"extra": "allow", "arbitrary_types_allowed": True}

    @property
    def kind(self) -> ServerType:
        """The explicit transport type, or the one implied by the configured fields."""
        if self.type is not None:
            return self.type
        if self.mcp_server is not None:
            return ServerType.BUILTIN
        if self.command:
            return ServerType.STDIO
        if self.url:
            return ServerType.SSE
        raise ValueError(
            f"Server '{self.name}' needs one of 'mcp_server', 'command' or 'url'"
        )

    def detached_copy(self) -> "MCPServerSettings":
        """
        Copy the settings so that no mutable value is shared with the original.

        The ``mcp_server`` object is the one exception: it is a live server and
        is shared by reference.
        """
        update: Dict[str, Any] = copy.deepcopy(self.model_extra or {})
        if self.args is not None:
            update["args"] = list(self.args)
        if self.env is not None:
            update["env"] = dict(self.env)
        if self.headers is not None:
            update["headers"] = dict(self.headers)
        if self.filters is not None:
            update["filters"] = self.filters.model_copy(deep=True)
        return self.model_copy(update=update)

    @model_validator(mode="after")
    def _check_transport_fields(self) -> "MCPServerSettings":
        kind = self.kind
        if kind == ServerType.BUILTIN and self.mcp_server is None:
            raise ValueError(f"'mcp_server' is required for builtin server: {self.name}")
        if kind == ServerType.STDIO and not self.command:
            raise ValueError(f"'command' is required for stdio server: {self.name}")
        if kind in (ServerType.SSE, ServerType.STREAMABLE_HTTP) and not self.url:
            raise ValueError(f"'url' is required for {kind.value} server: {self.name}")
        return self


class MCPSettings(BaseModel):
    """Settings for MCP configuration."""

    servers: Dict[str, MCPServerSettings] = Field(default_factory=dict)
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS
    is_debug: bool = False

    @field_validator("servers", mode="before")
    @classmethod
    def _name_servers_by_key(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        named = {}
        for key, server in value.items():
            if isinstance(server, dict):
                server = {"name": key, **server}
            named[key] = server
        return named


class LoggingSettings(BaseModel):
    """Settings for logging configuration."""

    level: str = "info"
    file_path: Optional[str] = None


class Settings(BaseModel):
    """Root settings object for mcpmux."""

    mcp: MCPSettings = Field(default_factory=MCPSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"extra": "allow"}

    def servers(self) -> List[MCPServerSettings]:
        """Server settings in declaration order."""
        return list(self.mcp.servers.values())


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load and validate the configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.
            If None, look for 'mcpmux.config.yaml' in the current directory.

    Returns:
        Settings: Validated configuration object.
    """
    if config_path is None:
        config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)

    config_data: Dict[str, Any] = {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    # Secrets (tokens in headers or env) live next to the main file
    secrets_path = Path(config_path).with_suffix(".secrets.yaml")
    if secrets_path.exists():
        with open(secrets_path, "r") as f:
            secrets_data = yaml.safe_load(f) or {}
        _merge_dicts(config_data, secrets_data)

    # Environment variables override file settings
    env_config = _load_from_env()
    if env_config:
        _merge_dicts(config_data, env_config)

    return Settings.model_validate(config_data)


def _load_from_env() -> Dict[str, Any]:
    """
    Load configuration from environment variables.

    Returns:
        Dict with configuration loaded from environment variables.
    """
    config: Dict[str, Any] = {}

    _set_nested_dict(config, ["logging", "level"], os.environ.get("LOG_LEVEL"))
    _set_nested_dict(config, ["logging", "file_path"], os.environ.get("LOG_FILE"))

    # MCPMUX_MCP__DEFAULT_TIMEOUT=30 -> mcp.default_timeout
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            path = [part for part in key[len(ENV_PREFIX):].lower().split("__") if part]
            if path:
                _set_nested_dict(config, path, value)

    return config


def _set_nested_dict(d: Dict[str, Any], path: List[str], value: Any) -> None:
    """
    Set a value in a nested dictionary based on a path.

    Args:
        d: Dictionary to set value in.
        path: List of keys defining the path.
        value: Value to set.
    """
    if value is None:
        return

    if len(path) == 1:
        d[path[0]] = value
        return

    if not isinstance(d.get(path[0]), dict):
        d[path[0]] = {}

    _set_nested_dict(d[path[0]], path[1:], value)


def _merge_dicts(target: Dict, source: Dict) -> None:
    """
    Recursively merge source dictionary into target dictionary.
    Values in source will override values in target.
    """
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _merge_dicts(target[key], value)
        else:
            target[key] = value
