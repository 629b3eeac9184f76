# cakeshop/cli.py
import os

import click
import pandas as pd
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import User
from .services.catalog_service import import_products_frame, products_frame


def _read_frame(path):
    ext = os.path.splitext(path)[1].lower()
    if ext in (".xlsx", ".xls"):
        return pd.read_excel(path)
    return pd.read_csv(path)


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("import-products")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_products(path):
    """Load products from a CSV or Excel sheet (columns: Name, Price, Specification, Tag, Image URL, Category)."""
    count = import_products_frame(_read_frame(path))
    click.echo(f"{count} products have been imported from {path}")


@click.command("export-products")
@click.argument("path", type=click.Path(dir_okay=False))
def export_products(path):
    df = products_frame()
    if os.path.splitext(path)[1].lower() in (".xlsx", ".xls"):
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    click.echo(f"{len(df)} products exported to {path}")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(import_products)
    app.cli.add_command(export_products)
