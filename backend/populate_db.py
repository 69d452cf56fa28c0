import os
import random
import sys
from datetime import datetime, timedelta
import uuid

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.product import Product
from models.sale import Sale
from models.users import User
from utils.hashing import get_password_hash

# Configuration
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
HISTORY_DAYS = 30
TRANSACTIONS_PER_DAY = (0, 6)

SAMPLE_PRODUCTS = [
    ("Indomie Goreng", "8998866200301", 3500, 120),
    ("Aqua 600ml", "8886008101053", 4000, 200),
    ("Teh Botol Sosro 450ml", "8992761002016", 6000, 80),
    ("Kopi Kapal Api Sachet", "8991002101104", 1500, 300),
    ("Roti Tawar Sari Roti", "8993202100014", 17000, 25),
    ("Susu Ultra 250ml", "8998009010231", 7000, 60),
    ("Chitato Sapi Panggang", "8992388101046", 11000, 9),
    ("Gula Pasir Gulaku 1kg", "8997004400013", 18500, 4),
    ("Minyak Goreng Bimoli 1L", "8992826111014", 22000, 7),
    ("Sabun Lifebuoy 85g", "8999999036683", 4500, 0),
]
# End Configuration


def ensure_admin(session) -> User:
    admin = session.query(User).filter(User.email == ADMIN_EMAIL).first()
    if admin:
        return admin
    admin = User(
        username="admin",
        email=ADMIN_EMAIL,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        role="admin",
    )
    session.add(admin)
    session.commit()
    print(f"Created admin account {ADMIN_EMAIL}")
    return admin


def seed_products(session) -> list:
    created = []
    for name, barcode, price, stock in SAMPLE_PRODUCTS:
        if session.query(Product).filter(Product.barcode == barcode).first():
            continue
        p = Product(name=name, barcode=barcode, price=price, stock=stock)
        session.add(p)
        created.append(p)
    session.commit()
    print(f"Added {len(created)} products")
    return session.query(Product).all()


def seed_sales(session, products: list, cashier: User):
    """Generate a month of cash transactions so the dashboard has data."""
    if session.query(Sale).first():
        print("Sales already present, skipping history")
        return

    now = datetime.now()
    rows = 0
    for day in range(HISTORY_DAYS, -1, -1):
        for _ in range(random.randint(*TRANSACTIONS_PER_DAY)):
            when = (now - timedelta(days=day)).replace(
                hour=random.randint(8, 20), minute=random.randint(0, 59), second=0, microsecond=0,
            )
            if when > now:
                when = now
            lines = random.sample(products, k=min(len(products), random.randint(1, 3)))
            quantities = [random.randint(1, 3) for _ in lines]
            total = sum(p.price * q for p, q in zip(lines, quantities))
            # Round the tendered amount up to the next 5000
            paid = ((int(total) // 5000) + 1) * 5000
            transaction_id = str(uuid.uuid4())
            for p, q in zip(lines, quantities):
                session.add(Sale(
                    product_id=p.id, quantity=q, sale_price=p.price,
                    transaction_id=transaction_id, sale_date=when,
                    payment_method="cash", amount_paid=paid, change_given=paid - total,
                    cashier_id=cashier.id,
                ))
                rows += 1
    session.commit()
    print(f"Added {rows} sale rows")


def main():
    init_db()
    session = SessionLocal()
    try:
        admin = ensure_admin(session)
        products = seed_products(session)
        seed_sales(session, products, admin)
    finally:
        session.close()


if __name__ == "__main__":
    main()
