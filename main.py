#!/usr/bin/env python3
"""
authledger -- admin commands for the credential ledger.

Usage:
  python main.py create-user a@x.com --password secret123
  python main.py create-user admin@x.com --password s3cret --name Admin --role admin
  python main.py purge-expired
  python main.py revoke-sessions 42
  python main.py revoke-token <token>

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL for the users and tokens tables.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass

from auth.authenticator import Authenticator
from auth.codec import CredentialCodec
from auth.errors import AuthError
from auth.issuer import CredentialIssuer, TokenLifetimes
from auth.ledger import TokenLedger
from auth.mailer import EmailService
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.clock import SystemClock
from core.config import Settings, get_settings

logger = logging.getLogger("authledger.cli")


@dataclass
class Services:
    users: UserStore
    ledger: TokenLedger
    authenticator: Authenticator
    clock: SystemClock

    def close(self) -> None:
        self.users.close()
        self.ledger.close()


def build_services(settings: Settings) -> Services:
    """Wire every component from one Settings instance.

    This is the only place configuration is read; each component receives the
    values it needs through its constructor.
    """
    clock = SystemClock()
    users = UserStore(settings.database_url)
    ledger = TokenLedger(settings.database_url, clock)
    codec = CredentialCodec(settings.secret_key, clock, algorithm=settings.jwt_algorithm)
    issuer = CredentialIssuer(codec, ledger, clock, TokenLifetimes.from_settings(settings))
    authenticator = Authenticator(
        users=users,
        ledger=ledger,
        issuer=issuer,
        codec=codec,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        mailer=EmailService.from_settings(settings),
        clock=clock,
    )
    return Services(users=users, ledger=ledger, authenticator=authenticator, clock=clock)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authledger",
        description="Admin commands for users and issued tokens.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a user with a local password")
    create.add_argument("email")
    create.add_argument("--password", required=True)
    create.add_argument("--name", default=None)
    create.add_argument("--role", choices=["user", "admin"], default="user")

    sub.add_parser("purge-expired", help="Delete ledger rows past their expiry")

    revoke_sessions = sub.add_parser("revoke-sessions", help="Revoke every refresh token of a user")
    revoke_sessions.add_argument("user_id", type=int)

    revoke_token = sub.add_parser("revoke-token", help="Revoke a single ledger token")
    revoke_token.add_argument("token")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    services = build_services(get_settings())
    try:
        if args.command == "create-user":
            profile = services.authenticator.register(args.email, args.password, name=args.name)
            if args.role != "user":
                services.users.update_user(profile.id, role=args.role)
            print(f"Created user {profile.id} ({profile.email}, role={args.role})")
        elif args.command == "purge-expired":
            removed = services.ledger.purge_expired(services.clock.now())
            print(f"Purged {removed} expired token(s).")
        elif args.command == "revoke-sessions":
            revoked = services.authenticator.revoke_sessions(args.user_id)
            print(f"Revoked {revoked} refresh token(s) for user {args.user_id}.")
        elif args.command == "revoke-token":
            services.ledger.revoke(args.token)
            print("Token revoked.")
    except AuthError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        services.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
