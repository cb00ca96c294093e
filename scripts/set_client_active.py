#!/usr/bin/env python3
"""Activate or deactivate an API client.

Deactivating also revokes every session the client holds, so its access
and refresh tokens stop working immediately.

Usage:
    python scripts/set_client_active.py <client_id> --inactive
    python scripts/set_client_active.py <client_id> --active
"""

import argparse
import asyncio
import sys

from gateway.core import async_session_maker
from gateway.services.auth import TokenService
from gateway.services.credential_store import CredentialStore


async def _set_active(client_id: str, active: bool) -> bool:
    async with async_session_maker() as db:
        store = CredentialStore(db)
        client = await store.set_client_active(client_id, active)
        if client is None:
            print(f"ERROR: Client '{client_id}' not found.")
            return False

        revoked = 0
        if not active:
            revoked = await TokenService(store).revoke_all_for_client(client.id)
        await store.commit()

    state = "active" if active else "inactive"
    print(f"Client '{client_id}' is now {state}.")
    if revoked:
        print(f"Revoked {revoked} session(s).")
    return True


def main():
    parser = argparse.ArgumentParser(description="Activate or deactivate an API client")
    parser.add_argument("client_id", help="Client identifier")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--active", dest="active", action="store_true", help="Activate")
    group.add_argument("--inactive", dest="active", action="store_false", help="Deactivate")
    args = parser.parse_args()

    if not asyncio.run(_set_active(args.client_id, args.active)):
        sys.exit(1)


if __name__ == "__main__":
    main()
