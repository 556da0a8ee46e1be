#!/usr/bin/env python
"""Idempotent seed script for the initial super_admin account.

Usage:
    python scripts/seed_admin.py                # create the admin if missing
    python scripts/seed_admin.py --show-users   # print users and roles (after ensuring seed)
    python scripts/seed_admin.py --dry-run      # run logic then rollback (no DB changes)

SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD override the default credentials.
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, inspect

# Allow running from repo root
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from invoice_tracker import create_app, get_db  # noqa: E402
from invoice_tracker.constants.roles import ROLE_SUPER_ADMIN, NO_ROLE  # noqa: E402
from invoice_tracker.models.authz import Base, User, UserRole  # noqa: E402
import invoice_tracker.models.invoice  # noqa: E402,F401
import invoice_tracker.models.audit  # noqa: E402,F401


def ensure_schema(session):
    engine = session.get_bind()
    if not inspect(engine).has_table('users'):
        # Bootstrap fallback; in real environments prefer `alembic upgrade head`
        Base.metadata.create_all(engine)
        return True
    return False


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com').strip().lower()
    user = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if user is None:
        user = User(first_name='System', last_name='Administrator', email=admin_email, designation='Administrator')
        user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
        user.force_password_change = True
        session.add(user)
        session.flush()
        print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
        created = True
    else:
        created = False
    if user.user_role is None:
        user.user_role = UserRole(role=ROLE_SUPER_ADMIN)
        print(f"[INFO] Granted {ROLE_SUPER_ADMIN} to {admin_email}.")
    elif user.user_role.role != ROLE_SUPER_ADMIN:
        print(f"[WARN] {admin_email} already holds role {user.user_role.role}; leaving it unchanged.")
    return created


def print_user_summary(session):
    users = session.execute(select(User).order_by(User.id)).scalars().all()
    if not users:
        print("[INFO] No users present.")
        return
    email_w = max(len(u.email) for u in users)
    print(f"{'Email'.ljust(email_w)} | Role")
    print('-' * (email_w + 16))
    for u in users:
        print(f"{u.email.ljust(email_w)} | {u.user_role.role if u.user_role else NO_ROLE}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the initial super_admin account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n  show users: seed_admin.py --show-users\n""")
    )
    p.add_argument('--show-users', action='store_true', help='Print users and their roles after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        if ensure_schema(session):
            print('[INFO] Created missing tables.')
        created = ensure_initial_admin(session)
        if args.show_users:
            session.flush()
            print_user_summary(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Admin would be created: {created}")
        else:
            session.commit()
            print(f"[DONE] Admin created: {created}")


if __name__ == '__main__':
    main()
