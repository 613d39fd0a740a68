#!/usr/bin/env python3
"""
Create the first superadmin account.
Run from the project root:
    python seed_superadmin.py
"""
import sys
import os

# Add the package to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from pydantic import ValidationError

from sinergi.database import SessionLocal, engine, Base
from sinergi import models  # noqa: F401
from sinergi.services.users import UserAdminError, create_first_superadmin


def main():
    print("\n=== SINERGI Superadmin Setup ===")

    Base.metadata.create_all(bind=engine)

    email = input("Enter superadmin email: ").strip()
    login_code = input("Enter login code: ").strip()
    full_name = input("Enter full name (default: Super Admin): ").strip() or "Super Admin"

    if not email or not login_code:
        print("Email and login code are required.")
        return

    db = SessionLocal()
    try:
        user = create_first_superadmin(db, email, login_code, full_name)
        print(f"\nSuccess! Created superadmin: {user.email} (ID: {user.id})")
    except (UserAdminError, ValidationError) as e:
        print(f"\nError: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
