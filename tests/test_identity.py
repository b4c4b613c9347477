"""
Tests for aggregated item ids.
"""

import hashlib
import re

from mcpmux.mcp.identity import identify, prompt_id, tool_id


def test_identify_is_deterministic():
    assert identify("f", "server", "tool") == identify("f", "server", "tool")


def test_identify_format():
    assert re.fullmatch(r"f[a-f0-9]{32}", tool_id("browser", "navigate"))
    assert re.fullmatch(r"p[a-f0-9]{32}", prompt_id("browser", "summarize"))


def test_kind_tag_only_changes_prefix():
    assert tool_id("s", "x")[1:] == prompt_id("s", "x")[1:]


def test_known_value_is_stable_across_processes():
    expected = "f" + hashlib.sha256(b"browsernavigate").hexdigest()[:32]
    assert tool_id("browser", "navigate") == expected


def test_server_and_item_order_matters():
    assert identify("f", "alpha", "beta") != identify("f", "beta", "alpha")


def test_no_collisions_in_sample():
    ids = {
        tool_id(f"server-{server}", f"tool-{tool}")
        for server in range(100)
        for tool in range(100)
    }
    assert len(ids) == 10_000
