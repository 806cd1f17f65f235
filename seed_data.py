from decimal import Decimal
from sqlmodel import Session, select
from app.core.security import get_password_hash
from app.db.session import engine, create_db_and_tables
from app.models.admin_user import AdminUser
from app.models.product import Product
from app.models.seller import Seller, VerificationStatus
from app.models.user import User

DEMO_PASSWORD = "password123"

def _user(name: str, email: str) -> User:
    return User(name=name, email=email, password_hash=get_password_hash(DEMO_PASSWORD))

def seed_marketplace():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        # Check if users already exist to avoid duplicates
        existing_users = session.exec(select(User)).all()
        if existing_users:
            print(f"Database already contains {len(existing_users)} users. Skipping seed.")
            return

        print("Seeding admin, sellers and products...")
        admin = _user("Campus Admin", "admin@campus.edu")
        buyer = _user("Juan Dela Cruz", "buyer@campus.edu")
        owner_a = _user("Maria Santos", "maria@campus.edu")
        owner_b = _user("Paolo Reyes", "paolo@campus.edu")
        session.add_all([admin, buyer, owner_a, owner_b])
        session.flush()

        session.add(AdminUser(user_id=admin.id, gcash_number="09171234567"))

        shop_a = Seller(
            user_id=owner_a.id,
            shop_name="Org Merch Hub",
            slug="org-merch-hub",
            description="Official merchandise of the student council.",
            contact_email="maria@campus.edu",
            verification_status=VerificationStatus.VERIFIED,
        )
        shop_b = Seller(
            user_id=owner_b.id,
            shop_name="Study Snacks",
            slug="study-snacks",
            description="Baked goods for late-night review sessions.",
            contact_email="paolo@campus.edu",
            verification_status=VerificationStatus.VERIFIED,
        )
        session.add_all([shop_a, shop_b])
        session.flush()

        products = [
            Product(seller_id=shop_a.id, name="Council Hoodie", slug="council-hoodie",
                    category="Apparel", price=Decimal("650.00"), stock=40),
            Product(seller_id=shop_a.id, name="Lanyard", slug="council-lanyard",
                    category="Accessories", price=Decimal("80.00"), stock=150),
            Product(seller_id=shop_b.id, name="Ube Cheese Pandesal (6 pcs)", slug="ube-pandesal",
                    category="Food", price=Decimal("120.00"), stock=30),
            Product(seller_id=shop_b.id, name="Chocolate Crinkles (12 pcs)", slug="choco-crinkles",
                    category="Food", price=Decimal("150.00"), stock=25),
        ]

        for product in products:
            session.add(product)

        session.commit()
        print(f"Successfully seeded 2 shops and {len(products)} products!")
        print(f"Log in as admin@campus.edu / {DEMO_PASSWORD}")

if __name__ == "__main__":
    seed_marketplace()
