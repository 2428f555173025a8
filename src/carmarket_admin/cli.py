# src/carmarket_admin/cli.py
"""
Operator commands for admin accounts.

    carmarket-admin create-admin EMAIL NAME PASSWORD [--super-admin]
    carmarket-admin reset-password EMAIL NEW_PASSWORD
    carmarket-admin promote-super-admin [EMAIL]
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from carmarket_admin.core import db
from carmarket_admin.core.exceptions import DuplicateEmail
from carmarket_admin.core.validation import is_valid_email, password_strength_errors
from carmarket_admin.crud import admin as crud_admin
from carmarket_admin.models.admin import Admin, AdminRole
from carmarket_admin.service.password_reset import clear_reset_token


class CommandError(Exception):
    pass


def _check_password(password: str) -> None:
    errors = password_strength_errors(password)
    if errors:
        raise CommandError("Password must include:\n  - " + "\n  - ".join(errors))


async def create_admin_command(
    session: AsyncSession, email: str, name: str, password: str, super_admin: bool = False
) -> Admin:
    if not is_valid_email(email):
        raise CommandError("Invalid email format")
    _check_password(password)
    role = AdminRole.SUPER_ADMIN if super_admin else AdminRole.ADMIN
    try:
        return await crud_admin.create_admin(session, email=email, password=password, name=name, role=role)
    except DuplicateEmail:
        raise CommandError(f"Admin with email {email} already exists")


async def reset_password_command(session: AsyncSession, email: str, new_password: str) -> Admin:
    _check_password(new_password)
    admin = await crud_admin.get_admin_by_email(session, email)
    if admin is None:
        raise CommandError(f"No admin found with email {email}")
    crud_admin.set_password(admin, new_password)
    # an operator reset also voids any emailed link
    clear_reset_token(admin)
    session.add(admin)
    await session.commit()
    return admin


async def promote_super_admin_command(session: AsyncSession, email: Optional[str] = None) -> Tuple[Admin, bool]:
    """Promote ``email`` (or the oldest admin); the flag says whether anything changed."""
    if email:
        admin = await crud_admin.get_admin_by_email(session, email)
        if admin is None:
            raise CommandError(f"No admin found with email: {email}")
    else:
        admin = await crud_admin.get_oldest_admin(session)
        if admin is None:
            raise CommandError("No admin accounts found in database")

    if admin.is_super_admin:
        return admin, False
    return await crud_admin.set_role(session, admin, AdminRole.SUPER_ADMIN), True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="carmarket-admin", description="Manage admin accounts")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-admin", help="create an admin account")
    create.add_argument("email")
    create.add_argument("name")
    create.add_argument("password")
    create.add_argument("--super-admin", action="store_true", help="grant the super_admin role")

    reset = sub.add_parser("reset-password", help="set a new password for an admin")
    reset.add_argument("email")
    reset.add_argument("new_password")

    promote = sub.add_parser("promote-super-admin", help="promote an admin (oldest by default) to super_admin")
    promote.add_argument("email", nargs="?")
    return parser


async def _run(args: argparse.Namespace) -> str:
    await db.init_db()
    try:
        async with db.async_session_factory() as session:
            if args.command == "create-admin":
                admin = await create_admin_command(session, args.email, args.name, args.password, args.super_admin)
                return f"Admin account created: {admin.email} ({admin.name}) id={admin.id} role={admin.role.value}"
            if args.command == "reset-password":
                admin = await reset_password_command(session, args.email, args.new_password)
                return f"Password reset for {admin.email} ({admin.name})"
            admin, changed = await promote_super_admin_command(session, args.email)
            if not changed:
                return f"Admin {admin.email} is already a super admin"
            return f"Promoted {admin.email} ({admin.name}) to super_admin"
    finally:
        await db.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        print(asyncio.run(_run(args)))
    except CommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
