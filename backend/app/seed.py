"""Seed an admin account, the default order settings and, optionally, demo products.

Usage:
    python -m app.seed --admin-name "Store Admin" --admin-phone 5511999990000
    python -m app.seed --admin-name "Store Admin" --admin-phone 5511999990000 --demo-products
"""
import logging

import click
from sqlalchemy.orm import Session

from app.database import Base, SessionLocal, engine
from app import models  # noqa: F401
from app.models.product import Product, FulfillmentType, SaleMode
from app.models.user import User
from app.services import settings_service

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {
        "name": "Specialty Coffee Beans 1kg",
        "description": "Medium roast, single origin.",
        "category": "Groceries",
        "original_price": "89.90",
        "group_price": "59.90",
        "min_people": 3,
        "stock": 120,
    },
    {
        "name": "Extra Virgin Olive Oil 500ml",
        "description": "Cold pressed.",
        "category": "Groceries",
        "original_price": "49.90",
        "group_price": "34.90",
        "min_people": 5,
        "stock": 80,
    },
    {
        "name": "Stainless Steel Water Bottle",
        "description": "Keeps drinks cold for 24 hours.",
        "category": "Home",
        "original_price": "79.00",
        "group_price": "55.00",
        "min_people": 4,
        "stock": 60,
        "fulfillment_type": FulfillmentType.delivery,
    },
    {
        "name": "Organic Honey 300g",
        "description": "Raw wildflower honey.",
        "category": "Groceries",
        "original_price": "32.00",
        "group_price": "24.00",
        "now_price": "28.00",
        "min_people": 2,
        "stock": 40,
        "sale_mode": SaleMode.now,
    },
]


def seed(db: Session, admin_name: str, admin_phone: str) -> User:
    """Create the admin if no user has that phone yet, then fill in missing settings."""
    admin = db.query(User).filter(User.phone == admin_phone).first()
    if admin is None:
        admin = User(name=admin_name, phone=admin_phone, is_admin=True)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info("Created admin user %s", admin.user_id)
    elif not admin.is_admin:
        admin.is_admin = True
        db.commit()
        db.refresh(admin)
        logger.info("Promoted user %s to admin", admin.user_id)
    else:
        logger.info("Admin user %s already exists", admin.user_id)

    settings_service.ensure_defaults(db)
    return admin


def seed_products(db: Session) -> int:
    """Insert the demo catalogue into an empty products table; returns rows added."""
    if db.query(Product.id).first() is not None:
        logger.info("Products already present; demo catalogue skipped")
        return 0
    for data in DEMO_PRODUCTS:
        db.add(Product(**data))
    db.commit()
    logger.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)


@click.command("seed")
@click.option("--admin-name", required=True, help="Display name of the admin account.")
@click.option("--admin-phone", required=True, help="Phone of the admin account; an existing user with it is promoted.")
@click.option("--create-tables", is_flag=True, help="Create tables before seeding.")
@click.option("--demo-products", is_flag=True, help="Add the demo catalogue when no products exist.")
def main(admin_name, admin_phone, create_tables, demo_products):
    """Seed the group-buy storefront database."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    if create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = seed(db, admin_name, admin_phone)
        click.echo(f"Admin user id: {admin.user_id}")
        if demo_products:
            click.echo(f"Demo products added: {seed_products(db)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
