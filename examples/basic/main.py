"""
Basic example: aggregate tools from a configured stdio server and an
in-process server, then route a call.
"""

import asyncio
import os

from mcp.server.fastmcp import FastMCP

from mcpmux import SERVER_ERROR, SERVER_STARTED, MuxApp

calculator = FastMCP("calculator")


@calculator.tool()
def add(a: float, b: float) -> float:
    """Add two numbers."""
    return a + b


def on_started(payload):
    print(f"[started] {payload['name']}")


def on_error(payload):
    print(f"[error] {payload['name']}: {payload['error']}")


async def main():
    """Run the basic example."""
    example_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(example_dir)

    app = MuxApp(name="basic", config_path=os.path.join(example_dir, "mcpmux.config.yaml"))
    app.register_event_handler(SERVER_STARTED, on_started)
    app.register_event_handler(SERVER_ERROR, on_error)

    async with app.run() as running_app:
        manager = running_app.manager
        await manager.add_server({"name": "calculator", "mcp_server": calculator})

        print("\nAvailable tools:")
        for tool in await manager.list_tools():
            print(f"  - {tool.server_name}/{tool.name} ({tool.id}): {tool.description}")

        print("\nAvailable prompts:")
        for prompt in await manager.list_prompts():
            print(f"  - {prompt.server_name}/{prompt.name} ({prompt.id})")

        result = await manager.call_tool("search", "search", {"query": "weather in San Francisco"})
        print("\nSearch result:")
        print(f"  {result.content[0].text}")

        result = await manager.call_tool("calculator", "add", {"a": 2, "b": 3})
        print(f"\n2 + 3 = {result.content[0].text}")

        print("\nServers:")
        for server in await manager.list_available_services():
            print(f"  - {server.name}: {server.status.value}")


if __name__ == "__main__":
    asyncio.run(main())
