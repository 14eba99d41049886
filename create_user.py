"""
Script for creating a new user. For dev/test purposes only.

.. warning: DO NOT USE THIS ON A PRODUCTION DATABASE.

"""

import sys

import click

from accounts import authorization
from accounts.domain import UserRegistration
from accounts.factory import create_web_app
from accounts.services import database, identity


@click.command()
@click.option('--username', prompt='Your username')
@click.option('--email', prompt='Your email address')
@click.option('--password', prompt='Your password', hide_input=True)
@click.option('--first-name', prompt='Your first name')
@click.option('--surname', prompt='Your surname')
@click.option('--role', 'roles', multiple=True,
              default=[authorization.CUSTOMER_ROLE],
              help='Role to grant; may be repeated.')
def create_user(username: str, email: str, password: str,
                first_name: str, surname: str, roles: tuple) -> None:
    """Create a new user. For dev/test purposes only."""
    app = create_web_app()
    with app.app_context():
        database.create_all()

        registration = UserRegistration(username=username, email=email,
                                        first_name=first_name,
                                        surname=surname)
        with database.transaction():
            result = identity.create_user(registration, password)
            if result.succeeded:
                for role in roles:
                    identity.add_to_role(result.user, role)

    if not result.succeeded:
        for error in result.errors:
            click.echo(error.description, err=True)
        sys.exit(1)
    click.echo(f'Created user {username} ({result.user.user_id})')


if __name__ == '__main__':
    create_user()
