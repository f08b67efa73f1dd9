# pollboard/cli.py

# Operator commands: `flask --app pollboard init-db` and `flask --app pollboard create-user`.

import click
from flask import current_app
from flask.cli import with_appcontext

from pollboard.authentication.rbac import UserRole
from pollboard.database.init_db import init_db
from pollboard.errors import ValidationError


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create tables and seed default choices and users (idempotent)."""
    services = current_app.extensions['pollboard']
    init_db(services.session, current_app.config, services.credentials)
    click.echo("Database initialized.")


@click.command('create-user')
@click.argument('username')
@click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.USER.value)
@click.password_option()
@with_appcontext
def create_user_command(username, role, password):
    """Provision a user account."""
    services = current_app.extensions['pollboard']
    if not services.validator.validate_username(username):
        raise click.BadParameter("letters, digits and _.@- only", param_hint='username')
    try:
        user = services.credentials.create_user(username, password, role)
    except ValidationError as e:
        raise click.ClickException(e.message)
    click.echo(f"User {user.username} created with role {user.role}.")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
