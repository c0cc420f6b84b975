"""
Quick script to create the initial admin user
Run this if you don't have an admin user yet
"""
from app.core.logging import setup_logging
from app.db.init_db import ensure_initial_admin
from app.db.session import SessionLocal, create_sqlite_tables

if __name__ == "__main__":
    setup_logging()
    create_sqlite_tables()
    db = SessionLocal()
    try:
        admin = ensure_initial_admin(db)
        if admin:
            print(f"Initial admin created: Employee Code: {admin.emp_code}")
        else:
            print("Admin user already exists, nothing to do")
    finally:
        db.close()
