#!/usr/bin/env python3
"""List API clients with their status and number of live sessions.

Usage:
    python scripts/list_clients.py
"""

import asyncio

from gateway.core import async_session_maker
from gateway.services.credential_store import CredentialStore


async def _list() -> None:
    async with async_session_maker() as db:
        rows = await CredentialStore(db).list_clients()

    if not rows:
        print("No clients found. Create one with scripts/create_client.py")
        return

    print(f"{'CLIENT ID':<30} {'NAME':<30} {'STATUS':<10} {'SESSIONS':>8}  CREATED")
    for client, session_count in rows:
        status = "active" if client.is_active else "inactive"
        created = client.created_at.strftime("%Y-%m-%d %H:%M")
        print(f"{client.client_id:<30} {client.name:<30} {status:<10} {session_count:>8}  {created}")
    print(f"\n{len(rows)} client(s)")


def main():
    asyncio.run(_list())


if __name__ == "__main__":
    main()
