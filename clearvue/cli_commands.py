"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask seed-demo: Insert a small demo catalog and customer
- flask inventory-report: Print low-stock and out-of-stock products
"""

import click
from decimal import Decimal
from clearvue.database import db_session, create_all, drop_all
from clearvue.models import Customer, Product
from clearvue.services.inventory_service import check_inventory_levels


DEMO_PRODUCTS = (
    ('SKU-1001', 'Trail Runner', 'Footwear', 'Stride', Decimal('89.90'), 40),
    ('SKU-1002', 'City Sneaker', 'Footwear', 'Stride', Decimal('64.50'), 120),
    ('SKU-2001', 'Rain Jacket', 'Outerwear', 'Northline', Decimal('149.00'), 15),
    ('SKU-3001', 'Wool Socks', 'Accessories', 'Knitwell', Decimal('12.00'), 0),
)


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first')
    def init_db_command(drop):
        """Create all tables."""
        if drop:
            drop_all()
            click.echo(click.style('Dropped existing tables.', fg='yellow'))
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-demo')
    def seed_demo():
        """Insert a demo catalog and one customer."""
        try:
            for sku, name, category, brand, price, stock in DEMO_PRODUCTS:
                if db_session.query(Product).filter_by(sku=sku).first():
                    continue
                db_session.add(Product(
                    sku=sku, name=name, category=category, brand=brand, price=price, stock=stock
                ))
            if not db_session.query(Customer).filter_by(email='demo@clearvue.local').first():
                db_session.add(Customer(name='Demo Customer', email='demo@clearvue.local'))
            db_session.commit()
            click.echo(click.style('Demo data inserted.', fg='green'))
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error seeding demo data: {e}', fg='red'))
            raise click.Abort()

    @app.cli.command('inventory-report')
    def inventory_report():
        """Print the inventory health check."""
        report = check_inventory_levels(db_session)

        click.echo(click.style(f"Inventory check at {report['timestamp']:%Y-%m-%d %H:%M}", bold=True))
        if not report['out_of_stock'] and not report['low_stock']:
            click.echo('All products are healthy.')
            return

        for entry in report['out_of_stock']:
            click.echo(click.style(
                f"  OUT  {entry['product']}: reorder {entry['required']} "
                f"(sold {entry['monthly_sales']} in window)", fg='red'
            ))
        for entry in report['low_stock']:
            click.echo(click.style(
                f"  LOW  {entry['product']}: {entry['current_stock']} on hand, "
                f"threshold {entry['threshold']}, reorder {entry['required']}", fg='yellow'
            ))
