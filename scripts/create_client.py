#!/usr/bin/env python3
"""Provision an API client for the integration gateway.

The secret is stored as an argon2 hash; it cannot be recovered later, so
note it down when this script prints it.

Usage:
    python scripts/create_client.py <client_id> <client_secret> <name> [--description TEXT]
    python scripts/create_client.py <client_id> --generate-secret <name>
"""

import argparse
import asyncio
import secrets
import sys

from gateway.core import async_session_maker, settings
from gateway.services.auth import hash_secret
from gateway.services.credential_store import CredentialStore


async def _create(client_id: str, client_secret: str, name: str, description: str | None) -> bool:
    async with async_session_maker() as db:
        store = CredentialStore(db)
        if await store.get_client_by_client_id(client_id) is not None:
            print(f"ERROR: Client '{client_id}' already exists.")
            return False
        await store.create_client(
            client_id=client_id,
            client_secret_hash=hash_secret(client_secret),
            name=name,
            description=description,
        )
        await store.commit()
    return True


def main():
    parser = argparse.ArgumentParser(description="Create an integration gateway API client")
    parser.add_argument("client_id", help="Unique client identifier")
    parser.add_argument("client_secret", nargs="?", help="Client secret (min 8 characters)")
    parser.add_argument("name", help="Display name")
    parser.add_argument("--description", help="Optional description")
    parser.add_argument(
        "--generate-secret",
        action="store_true",
        help="Generate a random secret instead of providing one",
    )
    args = parser.parse_args()

    if args.generate_secret:
        client_secret = secrets.token_urlsafe(32)
    elif args.client_secret:
        client_secret = args.client_secret
    else:
        print("ERROR: Provide client_secret or --generate-secret")
        sys.exit(1)

    if len(client_secret) < 8:
        print("ERROR: client_secret must be at least 8 characters.")
        sys.exit(1)

    if not asyncio.run(_create(args.client_id, client_secret, args.name, args.description)):
        sys.exit(1)

    print(f"Created client '{args.client_id}' ({args.name})")
    if args.generate_secret:
        print(f"Client secret: {client_secret}")
    print()
    print("Request a token with:")
    print(
        "  curl -X POST http://localhost:8000/auth/token "
        "-H 'Content-Type: application/json' "
        f"-d '{{\"client_id\": \"{args.client_id}\", \"client_secret\": \"<secret>\", "
        "\"grant_type\": \"client_credentials\"}'"
    )
    print(f"Access tokens last {settings.access_token_expire_seconds} seconds.")


if __name__ == "__main__":
    main()
