# scripts/create_admin.py

import asyncio
import logging

import typer
from fastapi import HTTPException

from reselec.core.database import AsyncSessionLocal, create_db_and_tables, engine
from reselec.domains import models  # noqa: F401
from reselec.domains.usr import seeds

logger = logging.getLogger("create_admin")

cli = typer.Typer()


async def run_creation(name: str, username: str, password: str) -> bool:
    await create_db_and_tables()
    try:
        async with AsyncSessionLocal() as db:
            try:
                await seeds.create_admin_user(db, name=name, username=username, password=password)
            except HTTPException as e:
                typer.echo(f"Error: {e.detail}", err=True)
                return False
    finally:
        await engine.dispose()
    return True


@cli.command()
def main(
    username: str = typer.Option(
        ..., '--username', '-u',
        prompt="Admin username",
        help="Login of the admin account."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="Admin password",
        hide_input=True,
        confirmation_prompt=True,
        help="Password of the admin account (at least 6 characters)."
    ),
    name: str = typer.Option(
        "Administrateur", '--name', '-n',
        help="Display name of the admin."
    ),
):
    """
    Creates the tables if needed, seeds permissions and default roles, and creates an Admin account.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    if len(password) < 6:
        typer.echo("Error: the password must be at least 6 characters long.", err=True)
        raise typer.Abort()

    if not asyncio.run(run_creation(name, username, password)):
        raise typer.Exit(code=1)
    typer.echo(f"Admin account created: {username}")


if __name__ == "__main__":
    cli()
