#!/usr/bin/env python3
"""
Connection check for the Redmine MCP Server

This script verifies that REDMINE_URL and REDMINE_API_KEY are set and that the
server can reach Redmine with them.
"""

import asyncio
import sys

import httpx

from redmine_mcp.client import RedmineClient
from redmine_mcp.config import ConfigurationError, RedmineConfig, get_setup_help_message
from redmine_mcp.errors import classify_http_error


async def check_connection(client: RedmineClient) -> bool:
    """Authenticate against Redmine as the configured user"""
    print(f"\n🔄 Testing connection to {client.base_url}...")

    try:
        user = (await client.get_current_user())["user"]
    except httpx.HTTPError as e:
        print(f"❌ Connection failed: {classify_http_error(e).message}")
        return False

    print(f"✅ Connected as {user.get('login')} (ID: {user.get('id')})")
    return True


async def check_features(client: RedmineClient) -> None:
    """Exercise the read-only endpoints the tools depend on"""
    print("\n🧪 Testing API features...\n")

    checks = [
        ("projects", client.list_projects, "projects"),
        ("issue statuses", client.list_issue_statuses, "issue_statuses"),
        ("time entry activities", client.list_time_entry_activities, "time_entry_activities"),
    ]
    for number, (label, fetch, key) in enumerate(checks, start=1):
        print(f"{number}. Testing {label} endpoint...")
        try:
            result = await fetch()
            print(f"   ✓ Found {len(result.get(key, []))} {label}")
        except httpx.HTTPError as e:
            print(f"   ✗ {label.capitalize()} test failed: {classify_http_error(e).message}")


async def main() -> int:
    """Run all checks"""
    print("=" * 50)
    print("Redmine MCP Server - Connection Test")
    print("=" * 50)

    try:
        config = RedmineConfig.from_env()
    except ConfigurationError as e:
        print(f"❌ ERROR: {e}")
        print(f"\n{get_setup_help_message()}")
        return 1

    print(f"✓ API key found: {config.api_key[:4]}...")
    client = RedmineClient(config)

    if not await check_connection(client):
        print("\n" + "=" * 50)
        print("❌ Tests failed. Please check your setup.")
        print("=" * 50)
        print("\nTroubleshooting:")
        print("1. Verify your API key is correct")
        print("2. Check that REDMINE_URL points at your Redmine instance")
        print("3. Ensure the REST API is enabled (Administration > Settings > API)")
        return 1

    await check_features(client)
    print("\n" + "=" * 50)
    print("✅ All checks passed! Your setup is ready.")
    print("=" * 50)
    print("\nNext steps:")
    print("1. Add `redmine-mcp` to your MCP host config with REDMINE_URL and REDMINE_API_KEY")
    print("2. Restart the host")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
