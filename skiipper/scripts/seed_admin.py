"""Create (or promote) the admin account used by the reporting pages.

Usage:
    flask --app skiipper.wsgi seed-admin --password secret123
    flask --app skiipper.wsgi seed-admin --email ops@example.com --password secret123
"""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from skiipper.core.auth.auth_service import ADMIN_ROLE, DEFAULT_REGISTER_ROLES, assign_roles, hash_password
from skiipper.core.users.models import User
from skiipper.extensions import db


def seed_admin_user(email: str, password: str, full_name: str | None = None) -> User:
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(
            email=email,
            full_name=full_name or "Admin",
            password_hash=hash_password(password),
        )
        db.session.add(user)
        db.session.flush()
    assign_roles(user, (*DEFAULT_REGISTER_ROLES, ADMIN_ROLE))
    db.session.commit()
    return user


@click.command("seed-admin")
@click.option("--email", default=None, help="Admin email (defaults to ADMIN_EMAIL)")
@click.option("--password", required=True, help="Admin password")
@click.option("--full-name", default="Admin", help="Admin display name")
@with_appcontext
def seed_admin_command(email: str | None, password: str, full_name: str) -> None:
    """Create the admin user with the admin role."""
    email = email or current_app.config["ADMIN_EMAIL"]
    user = seed_admin_user(email, password, full_name)
    click.echo(f"Seeded admin user {user.email} with roles {user.role_codes}")


def register_commands(app) -> None:
    app.cli.add_command(seed_admin_command)
