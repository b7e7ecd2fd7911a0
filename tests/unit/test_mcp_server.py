"""Tests for the MCP server tools (requires the mcp extra)."""

import asyncio

import pytest

pytest.importorskip("mcp")

from compcalc.mcp import server

from conftest import write_profile


def test_project_compensation(isolated_env, base_profile):
    write_profile(isolated_env["config_dir"], base_profile)

    result = asyncio.run(server.project_compensation(start_year=2022, end_year=2023, stock_price=None))

    assert "error" not in result
    assert [p["year"] for p in result["projections"]] == [2022, 2023]
    assert result["projections"][0]["rsu_vest"] == pytest.approx(18750)
    assert result["warnings"]


def test_project_compensation_without_profile(isolated_env):
    result = asyncio.run(server.project_compensation(start_year=2022, end_year=2023, stock_price=None))

    assert "No profile found" in result["error"]
    assert result["projections"] == []


def test_list_grants(isolated_env, base_profile):
    write_profile(isolated_env["config_dir"], base_profile)

    result = asyncio.run(server.list_grants(as_of="2024-06"))

    assert result["count"] == 1
    assert result["grants"][0]["vested_shares"] == pytest.approx(562.5)
