#!/usr/bin/env python
"""Idempotent bootstrap of the first Raden account (and schema, if missing).

Usage:
    python backend/scripts/seed_admin.py                 # create admin if absent
    python backend/scripts/seed_admin.py --dry-run       # run logic then rollback (no DB changes)
    python backend/scripts/seed_admin.py --show-users    # print role -> user counts afterwards

Credentials come from SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD.
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, inspect

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from seedledger import create_app, get_db  # noqa: E402
from seedledger.constants.roles import Role, ROLE_ORDER  # noqa: E402
from seedledger.models import Base, User  # noqa: E402


def ensure_schema(session):
    engine = session.get_bind()
    if not inspect(engine).has_table('users'):
        # Auto-create schema for bootstrap; in real env prefer alembic upgrade
        Base.metadata.create_all(engine)
        return True
    return False


def ensure_admin(session, email: str, password: str):
    """Return (user, created). An existing account is promoted to Raden if needed."""
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(name='Raden', email=email, role=Role.RADEN.value, password_hash='')
        user.set_password(password)
        session.add(user)
        session.flush()
        return user, True
    if user.role != Role.RADEN.value:
        print(f"[INFO] Promoting {email} from {user.role} to {Role.RADEN.value}")
        user.role = Role.RADEN.value
    return user, False


def print_user_summary(session):
    counts = {r.value: 0 for r in ROLE_ORDER}
    for role in session.execute(select(User.role)).scalars():
        counts[role] = counts.get(role, 0) + 1
    width = max(len(r) for r in counts)
    print(f"{'Role'.ljust(width)} | Users")
    print('-' * (width + 10))
    for role, cnt in counts.items():
        print(f"{role.ljust(width)} | {str(cnt).rjust(5)}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed the initial Raden account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n"""),
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--show-users', action='store_true', help='Print user counts per role after seeding')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    password = os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!')
    with app.app_context():
        session = get_db()
        if ensure_schema(session):
            print('[INFO] Created schema from models')
        user, created = ensure_admin(session, email, password)
        if args.show_users:
            print_user_summary(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Admin {email} would be {'created' if created else 'kept'}")
        else:
            session.commit()
            print(f"[DONE] Admin {email} {'created with temporary password' if created else 'already present'}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
