#!/usr/bin/env python
"""Idempotent seed script for permissions, role presets and the first superuser.

Usage:
    python backend/scripts/seed_authz.py               # seed normally
    python backend/scripts/seed_authz.py --show-roles  # print role -> permissions after seeding
    python backend/scripts/seed_authz.py --dry-run     # run logic then rollback (no DB changes)

The superuser is only created when SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD are set.
"""
from __future__ import annotations
import argparse
import logging
import os
import sys
import textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from bizops import create_app, get_db  # type: ignore
from bizops.models.authz import Base, Permission, Role, RolePermission, User
from bizops.constants.permissions import Perm, PERMISSION_DESCRIPTIONS, ROLE_PRESETS

logger = logging.getLogger('seed_authz')


def ensure_permissions(session):
    existing = set(session.execute(select(Permission.name)).scalars())
    created = 0
    for perm in Perm:
        if perm.value not in existing:
            session.add(Permission(name=perm.value, description=PERMISSION_DESCRIPTIONS.get(perm)))
            created += 1
    session.flush()
    return created


def ensure_roles(session):
    roles = {r.name: r for r in session.execute(select(Role)).scalars()}
    perms = {p.name: p for p in session.execute(select(Permission)).scalars()}
    created = 0
    for role_name, wanted in ROLE_PRESETS.items():
        role = roles.get(role_name)
        if role is None:
            role = Role(name=role_name, description=role_name)
            session.add(role)
            created += 1
        current = {rp.permission.name for rp in role.permissions}
        # presets only ever add permissions; grants made by hand are kept
        for perm in wanted:
            if perm.value not in current:
                session.add(RolePermission(role=role, permission=perms[perm.value]))
    session.flush()
    return created


def ensure_initial_admin(session):
    email = os.getenv('SEED_ADMIN_EMAIL')
    password = os.getenv('SEED_ADMIN_PASSWORD')
    if not email or not password:
        logger.info('SEED_ADMIN_EMAIL/SEED_ADMIN_PASSWORD not set; skipping superuser creation')
        return None
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        if not user.is_ceo:
            user.is_ceo = True
            logger.info('Promoted %s to superuser', email)
        return user
    user = User(username=email.split('@', 1)[0], full_name='Administrator', email=email, is_ceo=True)
    user.set_password(password)
    session.add(user)
    session.flush()
    logger.info('Created superuser %s', email)
    return user


def build_role_permission_map(session):
    return {
        role.name: sorted(rp.permission.name for rp in role.permissions)
        for role in session.execute(select(Role)).scalars()
    }


def print_role_summary(mapping):
    if not mapping:
        print('[INFO] No roles present.')
        return
    name_w = max(len(name) for name in mapping)
    print(f"{'Role'.ljust(name_w)} | Count | Permissions")
    print('-' * (name_w + 40))
    for name, perms in sorted(mapping.items()):
        print(f"{name.ljust(name_w)} | {str(len(perms)).rjust(5)} | {', '.join(perms)}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description='Seed permissions & role presets',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_authz.py\n  dry run: seed_authz.py --dry-run\n  show roles: seed_authz.py --show-roles\n"""),
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permissions after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args(argv)


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM permissions LIMIT 1'))
        except Exception:
            # bootstrap only; real deployments run `alembic upgrade head`
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        try:
            created_p = ensure_permissions(session)
            created_r = ensure_roles(session)
            ensure_initial_admin(session)
            mapping = build_role_permission_map(session)
            if args.dry_run:
                session.rollback()
                logger.info('Dry run: would create %s permissions and %s roles', created_p, created_r)
            else:
                session.commit()
                logger.info('Seeded %s permissions and %s roles', created_p, created_r)
            if args.show_roles:
                print_role_summary(mapping)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
