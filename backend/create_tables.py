"""Create the database schema and the first admin account.

Usage: ``python create_tables.py`` with DATABASE_URL and
DEFAULT_ADMIN_PASSWORD set (a ``.env`` at the repository root is read).
"""

from app import create_app
from models import db
from utils.seed import ensure_default_admin


def main():
    app = create_app()
    with app.app_context():
        db.create_all()
        admin = ensure_default_admin()
        print(f"Tables ready, admin account: {admin.username}")


if __name__ == "__main__":
    main()
