"""Create an administrator account.

Public registration cannot grant the admin role, so the first admin is
created from the command line.

Usage:
    python -m leave_api.create_admin EMAIL PASSWORD [--name NAME]
"""
import argparse
import sys

from leave_api.core.errors import AppError
from leave_api.database import SessionLocal, init_db
from leave_api.models.user import Role
from leave_api.services import auth_service


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin user.")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default=None)
    args = parser.parse_args(argv)

    init_db()
    db = SessionLocal()
    try:
        user = auth_service.register(db, args.email, args.password, name=args.name, role=Role.ADMIN)
    except AppError as exc:
        print(f"Could not create admin: {exc.message}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created admin {user.email} (id={user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
