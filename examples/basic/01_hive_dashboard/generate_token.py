#!/usr/bin/env python3
"""
Generate a session token for the Hive Dashboard example.

Usage:
    HIVE_JWT_SECRET=... python generate_token.py u-ada

The token's "sub" claim is the user id JWTSessionProvider puts on the session.
"""
import os
import sys

from hive_tenancy import JWTSessionProvider


def generate(user_id: str) -> str:
    provider = JWTSessionProvider(secret=os.environ["HIVE_JWT_SECRET"])
    return provider.issue(user_id, email=f"{user_id}@example.com", sid=f"sess-{user_id}")


if __name__ == "__main__":
    print(generate(sys.argv[1] if len(sys.argv) > 1 else "u-ada"))
