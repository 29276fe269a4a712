"""
Administrative license grant.

Activates a package for an existing account without a Stripe purchase, and
optionally promotes the account to administrator.

Run: python -m scripts.grant_license <username> <package> [--admin]
"""
import argparse
import logging
import sys

from license_api.db.session import SessionLocal
from license_api.db.account_repository import AccountRepository
from license_api.core.errors import LicenseError
from license_api.services import license_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def grant_license(username: str, package: str, make_admin: bool = False) -> bool:
    db = SessionLocal()
    try:
        repo = AccountRepository(db)
        account = repo.find_by_username(username)
        if account is None:
            logger.error(f"User {username} not found")
            return False

        license_service.activate(
            repo,
            account,
            package=package,
            customer_id=account.stripe_customer_id,
            subscription_id=account.stripe_subscription_id,
        )
        if make_admin:
            repo.update(account.id, {"is_admin": True})
            logger.info(f"Promoted {username} to administrator")
        return True
    except LicenseError as e:
        db.rollback()
        logger.error(f"Could not grant license to {username}: {e.message}")
        return False
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Grant a license package to an account")
    parser.add_argument("username")
    parser.add_argument("package", help="e.g. monthly or lifetime")
    parser.add_argument("--admin", action="store_true", help="also grant administrator rights")
    args = parser.parse_args(argv)

    if grant_license(args.username, args.package, args.admin):
        print(f"[SUCCESS] {args.username} now has an active {args.package} license")
        return 0
    print(f"[ERROR] Failed to grant license to {args.username}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
