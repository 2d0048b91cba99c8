#!/usr/bin/env python
"""
CLI script to create users for the Bootcamp Directory API.

Usage:
    python scripts/create_user.py --email admin@example.com --name "Site Admin" --role admin
    python scripts/create_user.py --email user@example.com --name "Jane Doe" --password mypassword

Run from an environment where the package is installed (pip install -e .).
If no password is provided, a random secure password will be generated.
"""
import argparse
import asyncio
import secrets
import string
import sys

from bootcamp_api.auth.utils import hash_password
from bootcamp_api.errors import Conflict
from bootcamp_api.models.user import MAX_PASSWORD_BYTES, Role
from bootcamp_api.services.firestore import FirestoreService


def generate_password(length: int = 16) -> str:
    """Generate a random secure password."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return ''.join(secrets.choice(alphabet) for _ in range(length))


async def create_user(email: str, name: str, password: str, role: Role) -> None:
    """Create a user in Firestore."""
    firestore = FirestoreService()

    try:
        user = await firestore.create_user(
            name=name,
            email=email.lower(),
            password_hash=hash_password(password),
            role=role.value,
            created_by="cli_script",
        )
    except Conflict:
        print(f"Error: User with email '{email}' already exists.")
        sys.exit(1)

    print(f"\n{'='*50}")
    print("User created successfully!")
    print(f"{'='*50}")
    print(f"Name:     {name}")
    print(f"Email:    {user.email}")
    print(f"Role:     {user.role.value}")
    print(f"Password: {password}")
    print(f"User ID:  {user.id}")
    print(f"{'='*50}")
    print("\nPlease save the password securely and send it to the user.")
    print("The password cannot be retrieved later - only reset.\n")


def main():
    parser = argparse.ArgumentParser(
        description="Create a user for the Bootcamp Directory API"
    )
    parser.add_argument("--email", required=True, help="User's email address")
    parser.add_argument("--name", required=True, help="User's display name")
    parser.add_argument(
        "--password",
        required=False,
        help="User's password (optional - will generate if not provided)"
    )
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.USER.value,
        help="User's role (default: user)"
    )

    args = parser.parse_args()

    password = args.password
    if not password:
        password = generate_password()
        print(f"Generated password: {password}")
    elif (
        len(password) < 8
        or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
        or "password" in password.lower()
    ):
        print(
            f"Error: Password must be 8 characters to {MAX_PASSWORD_BYTES} bytes long "
            "and must not contain 'password'."
        )
        sys.exit(1)

    # Validate email format (basic check)
    if "@" not in args.email or "." not in args.email:
        print(f"Error: Invalid email format: {args.email}")
        sys.exit(1)

    asyncio.run(create_user(args.email, args.name.strip(), password, Role(args.role)))


if __name__ == "__main__":
    main()
