"""Seed script for demo data.

Running this script will populate the database with a handful of
Casablanca storefronts, their menus and a demo buyer for
demonstration purposes. It can be executed with
``python -m seed.seed`` from the repository root.
"""
from __future__ import annotations

from brewnear import create_app, db
from brewnear.models import Drink, Seller, Specialty, User, UserType

SELLERS = [
    {
        "email": "atlas@example.com",
        "business_name": "Atlas Coffee Corner",
        "address": "12 Boulevard d'Anfa, Casablanca",
        "latitude": 33.5899,
        "longitude": -7.6321,
        "phone": "+212612345678",
        "specialty": Specialty.COFFEE,
        "drinks": [
            ("Nous Nous", "Half espresso, half steamed milk, served in a glass.", 12, "hot-drinks"),
            ("Iced Spanish Latte", "Espresso over ice with sweetened condensed milk.", 28, "cold-drinks"),
        ],
    },
    {
        "email": "matcha@example.com",
        "business_name": "Maarif Matcha Bar",
        "address": "45 Rue Abou Bakr Seddik, Maarif, Casablanca",
        "latitude": 33.5785,
        "longitude": -7.6370,
        "phone": "0698765432",
        "specialty": Specialty.MATCHA,
        "drinks": [
            ("Ceremonial Matcha", "Whisked ceremonial grade matcha, served hot.", 35, "hot-drinks"),
            ("Matcha Cookie", "Chewy white chocolate cookie with matcha.", 15.5, "snacks"),
        ],
    },
]


def run_seeds() -> None:
    """Insert demo sellers, drinks and a buyer into the database."""
    app = create_app()
    with app.app_context():
        db.create_all()
        for entry in SELLERS:
            owner = User(email=entry["email"], name=entry["business_name"], user_type=UserType.SELLER)
            owner.set_password("password")
            db.session.add(owner)
            db.session.flush()
            seller = Seller(
                id=owner.id,
                name=entry["business_name"],
                business_name=entry["business_name"],
                address=entry["address"],
                latitude=entry["latitude"],
                longitude=entry["longitude"],
                phone=entry["phone"] if entry["phone"].startswith("+") else "+212" + entry["phone"][1:],
                specialty=entry["specialty"],
                hours="Mon-Sat: 8AM-8PM",
            )
            db.session.add(seller)
            db.session.add_all(
                Drink(seller_id=owner.id, name=name, description=description, price=price, category=category)
                for name, description, price, category in entry["drinks"]
            )
        buyer = User(email="buyer@example.com", name="Demo Buyer", user_type=UserType.BUYER)
        buyer.set_password("password")
        db.session.add(buyer)
        db.session.commit()
        print("Seed data inserted successfully.")


if __name__ == "__main__":
    run_seeds()
