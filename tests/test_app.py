"""
Tests for MuxApp.
"""

import pytest
import yaml

from mcpmux import SERVER_STARTED, MuxApp, Settings
from mcpmux.config import MCPServerSettings, MCPSettings

from fakes import tools_server


@pytest.mark.asyncio
async def test_run_with_settings_object():
    settings = Settings(
        mcp=MCPSettings(
            servers={"tools": MCPServerSettings(name="tools", mcp_server=tools_server())}
        )
    )
    app = MuxApp(settings=settings)

    async with app.run() as running_app:
        tools = await running_app.manager.list_tools()
        assert [tool.server_name for tool in tools] == ["tools", "tools"]

    with pytest.raises(RuntimeError):
        app.manager


@pytest.mark.asyncio
async def test_run_with_config_file(tmp_path, monkeypatch, connections):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)
    config_path = tmp_path / "mcpmux.config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "mcp": {
                    "default_timeout": 5,
                    "servers": {
                        "remote": {"type": "streamable-http", "url": "http://remote.test/mcp"},
                        "parked": {"url": "http://parked.test/sse", "status": "disabled"},
                    },
                }
            }
        )
    )
    connections.provider("remote", tools=["lookup"])
    started = []

    app = MuxApp(name="test-app", config_path=str(config_path), connection_factory=connections)
    app.register_event_handler(SERVER_STARTED, started.append)

    async with app.run() as running_app:
        assert running_app.manager.default_timeout == 5
        assert [tool.name for tool in await running_app.manager.list_tools()] == ["lookup"]
        assert len(await running_app.manager.list_available_services()) == 2

    assert started == [{"name": "remote"}]
    assert connections.providers["remote"].close_calls == 1


def test_manager_requires_initialization():
    with pytest.raises(RuntimeError):
        MuxApp().manager
