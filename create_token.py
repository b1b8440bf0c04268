"""Print a bearer token for a user id, signed with the configured SECRET_KEY.

Usage:
    SECRET_KEY=... python create_token.py 1 --days 30
"""
import argparse

from feed_api.app.core.config import settings
from feed_api.app.core.security import TokenIssuer


def main() -> None:
    ap = argparse.ArgumentParser(description="Issue a Feed API token.")
    ap.add_argument("subject_id", type=int, help="User id to embed as the token subject")
    ap.add_argument("--days", type=int, default=1, help="Token lifetime in days")
    args = ap.parse_args()

    issuer = TokenIssuer(settings.secret_key)
    print(issuer.issue(args.subject_id, ttl=args.days * 24 * 60 * 60))


if __name__ == "__main__":
    main()
