"""Seeds a local database with an admin account, a category and demo products."""
import os
import sys
from decimal import Decimal

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.users import User
from models.category import Category
from models.product import Product

# Configuration
ADMIN_ID = os.getenv("SEED_ADMIN_ID", "user_admin")
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")

DEMO_PRODUCTS = [
    ("Espresso Grinder", "espresso-grinder", Decimal("129.00"), 15),
    ("Pour Over Kettle", "pour-over-kettle", Decimal("45.50"), 40),
    ("Ceramic Dripper", "ceramic-dripper", Decimal("24.90"), 60),
    ("Paper Filters (100)", "paper-filters-100", Decimal("5.50"), 500),
    ("Digital Scale", "digital-scale", Decimal("32.00"), 25),
]
# End Configuration

def seed():
    init_db()
    session = SessionLocal()
    try:
        admin = session.query(User).filter(User.id == ADMIN_ID).first()
        if not admin:
            admin = User(id=ADMIN_ID, email=ADMIN_EMAIL, full_name="Store Admin", role="admin", is_verified=True)
            session.add(admin)

        category = session.query(Category).filter(Category.slug == "coffee-gear").first()
        if not category:
            category = Category(name="Coffee Gear", slug="coffee-gear")
            session.add(category)
        session.flush()

        created = 0
        for title, slug, price, stock in DEMO_PRODUCTS:
            if session.query(Product).filter(Product.slug == slug).first():
                continue
            session.add(Product(
                title=title, slug=slug, price=price, stock=stock,
                category_id=category.id, created_by=admin.id,
            ))
            created += 1

        session.commit()
        print(f"Seeded {created} products (admin: {ADMIN_EMAIL})")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

if __name__ == "__main__":
    seed()
