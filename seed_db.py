import os

from database import init_db, SessionLocal, Category, User
from auth import AuthService

# Shared defaults: (name, type, color, icon)
DEFAULT_CATEGORIES = [
    ("Salary", "income", "#10B981", "briefcase"),
    ("Freelance", "income", "#06B6D4", "laptop"),
    ("Investments", "income", "#8B5CF6", "trending-up"),
    ("Other Income", "income", "#84CC16", "plus-circle"),
    ("Food", "expense", "#F59E0B", "utensils"),
    ("Transport", "expense", "#3B82F6", "car"),
    ("Housing", "expense", "#EF4444", "home"),
    ("Utilities", "expense", "#06B6D4", "zap"),
    ("Health", "expense", "#EC4899", "heart"),
    ("Entertainment", "expense", "#8B5CF6", "film"),
    ("Shopping", "expense", "#F59E0B", "shopping-bag"),
    ("Other", "expense", "#6B7280", "tag"),
]

DEMO_EMAIL = os.getenv("DEMO_EMAIL", "demo@example.com")
DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "demo123")


def seed_categories(session_factory=SessionLocal) -> int:
    db = session_factory()
    try:
        # Check if defaults exist
        if db.query(Category).filter(Category.user_id.is_(None)).first():
            return 0
        for name, tx_type, color, icon in DEFAULT_CATEGORIES:
            db.add(Category(name=name, type=tx_type, color=color, icon=icon, user_id=None))
        db.commit()
        return len(DEFAULT_CATEGORIES)
    finally:
        db.close()


def seed_demo_user(session_factory=SessionLocal) -> bool:
    db = session_factory()
    try:
        exists = db.query(User).filter(User.email == DEMO_EMAIL).first() is not None
    finally:
        db.close()
    if exists:
        return False
    AuthService(session_factory).sign_up(DEMO_EMAIL, DEMO_PASSWORD, "Demo User")
    return True


def seed(bind=None, session_factory=SessionLocal):
    init_db(bind)
    added = seed_categories(session_factory)
    print(f"Added {added} default categories." if added else "Default categories already exist. Skipping.")
    if seed_demo_user(session_factory):
        print(f"Created demo user {DEMO_EMAIL}.")
    else:
        print("Demo user already exists. Skipping.")


if __name__ == "__main__":
    seed()
