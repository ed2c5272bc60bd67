"""Management CLI.

Usage:
    python -m app.cli init-db                                   # Create all tables
    python -m app.cli create-user USERNAME PASSWORD AREA [FULL NAME]
    python -m app.cli list-users
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from app.auth.password import hash_password
from app.config import settings
from app.database import Base
from app.models import User
from app.models.enums import Area


def get_engine():
    return create_engine(settings.database_url_sync)


def init_db():
    """Create every table directly (dev only; use ``alembic upgrade head`` otherwise)."""
    Base.metadata.create_all(get_engine())
    print("Tables created.")


def create_user(username: str, password: str, area: str, full_name: str | None = None):
    try:
        area_value = Area(area).value
    except ValueError:
        print(f"Unknown area: {area}. Choose one of: {', '.join(a.value for a in Area)}")
        sys.exit(1)

    with Session(get_engine()) as session:
        if session.execute(select(User).where(User.username == username)).scalar_one_or_none():
            print(f"User {username} already exists.")
            sys.exit(1)
        session.add(User(
            username=username,
            full_name=full_name or username,
            hashed_password=hash_password(password),
            area=area_value,
        ))
        session.commit()
    print(f"Created {username} ({area_value})")


def list_users():
    with Session(get_engine()) as session:
        users = session.execute(select(User).order_by(User.area, User.username)).scalars().all()
    for u in users:
        status = "" if u.is_active else " (inactive)"
        print(f"  {u.username:<20} {u.area:<12} {u.full_name}{status}")
    print(f"\n{len(users)} user(s)")


def main():
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    args = sys.argv[2:]
    if cmd == "init-db":
        init_db()
    elif cmd == "create-user" and len(args) >= 3:
        create_user(args[0], args[1], args[2], " ".join(args[3:]) or None)
    elif cmd == "list-users":
        list_users()
    else:
        print("Usage: python -m app.cli [init-db|create-user USERNAME PASSWORD AREA [FULL NAME]|list-users]")
        sys.exit(1)


if __name__ == "__main__":
    main()
