"""
Simple search server for demo purposes.
"""

import sys

from mcp.server.fastmcp import FastMCP

app = FastMCP("search-server")


@app.tool()
async def search(query: str) -> str:
    """
    Search for information.

    Args:
        query: The search query.

    Returns:
        Results of the search.
    """
    # This is a mock implementation
    print(f"Received search query: {query}", file=sys.stderr)

    if "weather" in query.lower():
        return "The weather is sunny with a high of 75F."
    return f"Search results for: {query}\n- Result 1\n- Result 2\n- Result 3"


@app.tool()
async def admin_reset() -> str:
    """Reset the search index."""
    return "Index reset"


@app.prompt()
def summarize(topic: str) -> str:
    """Ask for a short summary of a topic."""
    return f"Summarize what is known about {topic} in three sentences."


if __name__ == "__main__":
    app.run()
