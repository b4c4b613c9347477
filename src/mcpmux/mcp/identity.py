"""
Stable identifiers for aggregated tools and prompts.
"""

import hashlib

TOOL_ID_PREFIX = "f"
PROMPT_ID_PREFIX = "p"
ID_HASH_LENGTH = 32


def identify(kind_tag: str, server_name: str, item_name: str) -> str:
    """
    Derive the id of a tool or prompt from the server and item names.

    The same names always give the same id, across processes and restarts.

    Args:
        kind_tag: Prefix marking the item kind ('f' for tools, 'p' for prompts).
        server_name: Name of the server exposing the item.
        item_name: Name of the tool or prompt on that server.

    Returns:
        The kind tag followed by 32 lowercase hex characters.
    """
    digest = hashlib.sha256(f"{server_name}{item_name}".encode("utf-8")).hexdigest()
    return f"{kind_tag}{digest[:ID_HASH_LENGTH]}"


def tool_id(server_name: str, tool_name: str) -> str:
    return identify(TOOL_ID_PREFIX, server_name, tool_name)


def prompt_id(server_name: str, prompt_name: str) -> str:
    return identify(PROMPT_ID_PREFIX, server_name, prompt_name)
