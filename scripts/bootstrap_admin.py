#!/usr/bin/env python3
"""Bootstrap an admin account for initial setup.

Needed when public registration is turned off (ALLOW_REGISTRATION=false).

Usage:
    # Using environment variables:
    ADMIN_USERNAME=root ADMIN_PASSWORD=SecurePassword123! python scripts/bootstrap_admin.py

    # Or with command line args:
    python scripts/bootstrap_admin.py --username root --password SecurePassword123! \
        --permission manage_users --permission manage_schedules

Environment Variables:
    ADMIN_USERNAME: Username for the admin account
    ADMIN_PASSWORD: Password for the admin account (must meet complexity requirements)
    KV_BACKEND: "redis" to write to REDIS_URL; otherwise the memory store is
        persisted under DATA_DIR so the server picks the account up
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def validate_password(password: str) -> bool:
    """Check password meets complexity requirements."""
    if len(password) < 12:
        return False
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(c in "!@#$%^&*()_+-=[]{}|;':\",./<>?" for c in password)
    return sum([has_upper, has_lower, has_digit, has_special]) >= 3


def bootstrap_admin(
    username: str,
    password: str,
    permissions: Optional[List[str]] = None,
    dry_run: bool = False,
) -> dict:
    """Create an admin account unless the username is already taken.

    Returns:
        dict with username and status ('created', 'already_admin', 'exists_other_role'
        or 'dry_run')
    """
    # Import here to avoid loading config before env vars are set
    from schoolhub.service.runtime import get_runtime

    runtime = get_runtime()

    existing = runtime.credentials.get_user(username)
    if existing is not None:
        if existing.role == "admin":
            print(f"User {username} already exists as admin (id: {existing.id})")
            return {"username": username, "status": "already_admin"}
        # Roles are fixed at registration; a student or teacher is never promoted
        print(f"User {username} already exists with role {existing.role}")
        return {"username": username, "status": "exists_other_role"}

    if dry_run:
        print(f"[DRY RUN] Would create admin user: {username}")
        return {"username": username, "status": "dry_run"}

    result = runtime.auth.register(
        username, password, "admin", {"permissions": permissions or ["all"]}
    )
    result.raise_for_failure()
    print(f"Created admin user: {username} (id: {result.value.id})")
    return {"username": username, "status": "created", "user_id": result.value.id}


def main():
    parser = argparse.ArgumentParser(
        description="Bootstrap an admin account for SchoolHub",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--username",
        default=os.environ.get("ADMIN_USERNAME"),
        help="Admin username (or set ADMIN_USERNAME env var)",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("ADMIN_PASSWORD"),
        help="Admin password (or set ADMIN_PASSWORD env var)",
    )
    parser.add_argument(
        "--permission",
        dest="permissions",
        action="append",
        help="Permission to grant; repeatable (default: all)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )

    args = parser.parse_args()

    if not args.username:
        print("Error: --username or ADMIN_USERNAME environment variable required")
        sys.exit(1)

    if not args.password:
        print("Error: --password or ADMIN_PASSWORD environment variable required")
        sys.exit(1)

    if not validate_password(args.password):
        print("Error: Password must be at least 12 characters with 3+ character classes")
        print("       (uppercase, lowercase, digits, special characters)")
        sys.exit(1)

    # A throwaway in-memory store would lose the account on exit
    if os.environ.get("KV_BACKEND", "memory") == "memory":
        os.environ["PERSIST_MEMORY_STORE"] = "true"
        print(f"Note: Writing to the memory store state under {os.environ.get('DATA_DIR', '/var/lib/schoolhub')}")

    try:
        result = bootstrap_admin(args.username, args.password, args.permissions, args.dry_run)
        if result["status"] == "created":
            print("\nAdmin user created successfully!")
            print(f"  Username: {result['username']}")
            print(f"  User ID: {result['user_id']}")
        elif result["status"] == "already_admin":
            print("\nNo changes needed - user is already an admin.")
        elif result["status"] == "exists_other_role":
            print("\nNothing created - choose another username.")
            sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
