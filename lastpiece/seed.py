#!/usr/bin/env python3
"""Create the super-admin account, or promote an existing user to it.

    python -m lastpiece.seed --email owner@lastpiece.shop --password '...'
"""
import argparse
import asyncio
import os
import platform
import sys
from datetime import datetime

from lastpiece.auth.models import UserDB
from lastpiece.shared.database import Database
from lastpiece.shared.security_config import password_policy_message, validate_password_strength
from lastpiece.shared.utils import get_password_hash, settings

DEFAULT_EMAIL = "superadmin@lastpiece.com"

# --- Colors ---
class Colors:
    HEADER = '\033[95m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

if platform.system() == "Windows":
    os.system('color')  # Enable ANSI colors in Windows terminal

def log(msg, color=Colors.ENDC, bold=False):
    prefix = Colors.BOLD if bold else ""
    print(f"{prefix}{color}{msg}{Colors.ENDC}")


async def seed_super_admin(db: Database, email: str, password: str, first_name: str = "Super",
                           last_name: str = "Admin", reset_password: bool = False) -> dict:
    """Returns the stored user; `created` tells whether it was inserted."""
    email = email.lower()
    existing = await db.users.find_one({"email": email})

    if existing:
        changes = {
            "role": "super-admin",
            "status": "active",
            "email_verified": True,
            "login_attempts": 0,
            "lock_until": None,
            "updated_at": datetime.utcnow(),
        }
        if reset_password:
            changes["password"] = get_password_hash(password)
        await db.users.update_one({"_id": existing["_id"]}, {"$set": changes})
        return {"id": str(existing["_id"]), "email": email, "created": False}

    user = UserDB(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=get_password_hash(password),
        role="super-admin",
        email_verified=True,
    )
    result = await db.users.insert_one(user.model_dump(by_alias=True, exclude={"id"}))
    return {"id": str(result.inserted_id), "email": email, "created": True}


async def run(args) -> int:
    db = await Database.connect(settings)
    if not db.connected:
        log("Could not connect to MongoDB", Colors.FAIL, bold=True)
        return 1
    try:
        result = await seed_super_admin(
            db, args.email, args.password, args.first_name, args.last_name, args.reset_password,
        )
    finally:
        db.close()

    log("\n" + "═" * 40, Colors.HEADER)
    if result["created"]:
        log("Super-admin account created", Colors.GREEN, bold=True)
    else:
        log("Existing account promoted to super-admin", Colors.GREEN, bold=True)
    log(f"Email:   {result['email']}")
    log(f"User ID: {result['id']}")
    log("═" * 40 + "\n", Colors.HEADER)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote the Last Piece super-admin")
    parser.add_argument("--email", default=os.getenv("SUPER_ADMIN_EMAIL", DEFAULT_EMAIL))
    parser.add_argument("--password", default=os.getenv("SUPER_ADMIN_PASSWORD"))
    parser.add_argument("--first-name", default="Super")
    parser.add_argument("--last-name", default="Admin")
    parser.add_argument("--reset-password", action="store_true",
                        help="Overwrite the password when the account already exists")
    args = parser.parse_args(argv)

    if not args.password:
        parser.error("--password (or SUPER_ADMIN_PASSWORD) is required")
    if not validate_password_strength(args.password):
        parser.error(password_policy_message())

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
