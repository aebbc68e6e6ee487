"""Grant (or revoke) the admin flag: python create_admin.py user@example.com [--revoke]"""
import sys

from sqlalchemy.orm import Session

import models  # noqa: F401
from database import SessionLocal
from models.user import User


def set_admin(db: Session, email: str, is_admin: bool = True) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise LookupError(f"No user with email {email}; sign in once first")
    user.is_admin = is_admin
    db.commit()
    db.refresh(user)
    return user


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    emails = [a for a in args if not a.startswith("--")]
    if not emails:
        print(__doc__)
        return 2
    revoke = "--revoke" in args
    email = emails[0]

    db = SessionLocal()
    try:
        user = set_admin(db, email, not revoke)
    except LookupError as e:
        print(f"❌ {e}")
        return 1
    finally:
        db.close()
    print(f"✅ {user.email}: is_admin={user.is_admin}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
