"""
Account and access-request administration commands.

Approval is manual: an administrator reviews pending requests with
``list-requests`` and approves an address with ``approve``.
"""

import getpass

from toetsgen.access_requests import (
    list_access_requests,
    request_access,
    revoke_access,
    set_access_status,
)
from toetsgen.cli import get_db_session
from toetsgen.database import ACCESS_STATUSES, STATUS_APPROVED, STATUS_PENDING
from toetsgen.web.auth import MIN_PASSWORD_LENGTH, create_user


def register_access_commands(subparsers):
    """Register access-administration subcommands."""

    # list-requests
    p = subparsers.add_parser("list-requests", help="List access requests.")
    p.add_argument("--status", choices=ACCESS_STATUSES, help="Only show requests with this status.")

    # approve
    p = subparsers.add_parser("approve", help="Approve every access request for an e-mail address.")
    p.add_argument("email", help="E-mail address to approve.")
    p.add_argument(
        "--create",
        action="store_true",
        help="Add an approved request when the address has none yet.",
    )

    # unapprove
    p = subparsers.add_parser("unapprove", help="Set an approved address back to pending.")
    p.add_argument("email", help="E-mail address.")

    # revoke
    p = subparsers.add_parser("revoke", help="Delete every access request for an e-mail address.")
    p.add_argument("email", help="E-mail address to revoke.")

    # create-user
    p = subparsers.add_parser("create-user", help="Create a teacher account.")
    p.add_argument("email", help="E-mail address (login name).")
    p.add_argument("--school", dest="school_name", default="", help="School name.")
    p.add_argument("--password", help="Password (prompted when omitted).")
    p.add_argument("--admin", action="store_true", help="Mark the account as administrator.")
    p.add_argument("--approve", action="store_true", help="Approve the account right away.")


def handle_list_requests(config, args):
    """Print access requests, newest first."""
    engine, session = get_db_session(config)
    try:
        rows = list_access_requests(session, status=getattr(args, "status", None))
        if not rows:
            print("No access requests found.")
            return

        print(f"\n{'ID':<5} {'Status':<10} {'Created':<17} {'E-mail':<35} {'Description'}")
        print(f"{'---':<5} {'---':<10} {'---':<17} {'---':<35} {'---'}")
        for row in rows:
            created = row.created_at.strftime("%Y-%m-%d %H:%M") if row.created_at else ""
            print(f"{row.id:<5} {row.status:<10} {created:<17} {row.email:<35} {row.school_name or ''}")
        print(f"\nTotal: {len(rows)} request(s)")
    finally:
        session.close()


def handle_approve(config, args):
    """Approve an address so it passes the access check."""
    engine, session = get_db_session(config)
    try:
        count = set_access_status(session, args.email, STATUS_APPROVED)
        if count == 0:
            if not getattr(args, "create", False):
                print(f"Error: No access request found for {args.email}. Use --create to add one.")
                return
            request_access(session, args.email, "Toegevoegd door beheerder")
            count = set_access_status(session, args.email, STATUS_APPROVED)
        print(f"[OK] Approved {args.email} ({count} request(s)).")
    finally:
        session.close()


def handle_unapprove(config, args):
    """Put an address back to pending; its next sign-in is refused."""
    engine, session = get_db_session(config)
    try:
        count = set_access_status(session, args.email, STATUS_PENDING)
        if count == 0:
            print(f"Error: No access request found for {args.email}.")
            return
        print(f"[OK] {args.email} is pending again ({count} request(s)).")
    finally:
        session.close()


def handle_revoke(config, args):
    """Remove every request for an address."""
    engine, session = get_db_session(config)
    try:
        count = revoke_access(session, args.email)
        if count == 0:
            print(f"Error: No access request found for {args.email}.")
            return
        print(f"[OK] Revoked access for {args.email} ({count} request(s) deleted).")
    finally:
        session.close()


def handle_create_user(config, args):
    """Create an account (and a pending or approved access request)."""
    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Error: Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return

    engine, session = get_db_session(config)
    try:
        user = create_user(
            session,
            args.email,
            password,
            school_name=args.school_name or None,
            is_admin=args.admin,
        )
        if not user:
            print(f"Error: An account for {args.email} already exists.")
            return
        request_access(session, user.email, args.school_name or "Aangemaakt door beheerder")
        if args.approve:
            set_access_status(session, user.email, STATUS_APPROVED)
        status = STATUS_APPROVED if args.approve else STATUS_PENDING
        role = "admin" if args.admin else "teacher"
        print(f"[OK] Created {role} account {user.email} (access: {status}).")
    finally:
        session.close()
