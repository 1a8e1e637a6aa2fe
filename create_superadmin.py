"""
Create the initial super admin account
Usage: python create_superadmin.py [--username U] [--email E] [--name N]

The password is read from SUPERADMIN_PASSWORD or prompted for.
"""
import argparse
import getpass
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from coworks.database import Base, SessionLocal, engine
from coworks.models import Admin, AdminRole
from coworks.security_utils import check_password_strength, hash_password

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def create_superadmin(username: str, email: str, name: str, password: str) -> bool:
    """Returns False when an account with the username or email already exists"""
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        existing = db.query(Admin).filter((Admin.username == username) | (Admin.email == email)).first()
        if existing:
            logger.info(f"⏭️  Admin {existing.username} already exists (role: {existing.role})")
            return False

        admin = Admin(
            username=username,
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            role=AdminRole.SUPER_ADMIN,
            is_active=True,
        )
        db.add(admin)
        db.commit()
        logger.info(f"✅ Super admin {username} created")
        return True
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the initial super admin")
    parser.add_argument("--username", default="superadmin")
    parser.add_argument("--email", default="superadmin@coworks.in")
    parser.add_argument("--name", default="Super Admin")
    args = parser.parse_args()

    password = os.getenv("SUPERADMIN_PASSWORD") or getpass.getpass("Password: ")
    strength = check_password_strength(password)
    if not strength["is_valid"]:
        logger.error(f"❌ Weak password: {', '.join(strength['feedback'])}")
        sys.exit(1)

    try:
        create_superadmin(args.username, args.email, args.name, password)
    except Exception as e:
        logger.error(f"❌ Failed to create super admin: {e}")
        sys.exit(1)
