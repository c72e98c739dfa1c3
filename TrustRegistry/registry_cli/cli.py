"""
Operator CLI for the trust registry.

Talks to the Redis ledger directly; the identity loaded from --key is the
signer of every mutating command.

Usage:
    python -m TrustRegistry.registry_cli.cli keygen --out admin.key
    python -m TrustRegistry.registry_cli.cli init --key admin.key
    python -m TrustRegistry.registry_cli.cli register-issuer --key admin.key \\
        --authority=<b64> --name "Acme University"
    python -m TrustRegistry.registry_cli.cli issue --key issuer.key \\
        --id CERT-001 --recipient=<b64> --uri ipfs://Qm...
    python -m TrustRegistry.registry_cli.cli verify CERT-001

Keys are URL-safe base64 and may start with "-", so pass them in the
--flag=<key> form.
"""

import argparse
import logging
import sys

from TrustRegistry.registry_db import connection
from TrustRegistry.registry_db.ledger import TrustRegistry
from TrustRegistry.registry_server import config as server_config
from TrustRegistry.registry_shared import config
from TrustRegistry.registry_shared.errors import CertRegistryError
from TrustRegistry.registry_shared.signing import Identity, decode_key, encode_b64


# ─── Key files ───

def load_identity(path: str) -> Identity:
    """Read a hex-encoded 32-byte seed written by `keygen`."""
    with open(path) as f:
        return Identity.from_seed(bytes.fromhex(f.read().strip()))


def _keygen(args: argparse.Namespace) -> None:
    identity = Identity.generate()
    with open(args.out, "x") as f:
        f.write(identity.seed.hex() + "\n")
    print(f"public key: {encode_b64(identity.public_key)}")


# ─── Commands ───

def _init(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.initialize(load_identity(args.key).public_key)
    print(f"registry initialized, admin {encode_b64(record.admin)}")


def _register_issuer(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.register_issuer(
        load_identity(args.key).public_key,
        decode_key(args.authority, "authority"),
        args.name,
        args.details,
    )
    print(f"issuer registered: {record.name} ({encode_b64(record.authority)})")


def _set_issuer_status(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.update_issuer_status(
        load_identity(args.key).public_key,
        decode_key(args.authority, "authority"),
        args.active,
    )
    state = "active" if record.active else "inactive"
    print(f"issuer {encode_b64(record.authority)} is now {state}")


def _issue(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.issue_certificate(
        load_identity(args.key).public_key,
        args.id,
        decode_key(args.recipient, "recipient"),
        args.uri,
        args.expiry,
    )
    print(f"certificate issued: {record.certificate_id} at {record.issue_date}")


def _revoke(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.revoke_certificate(load_identity(args.key).public_key, args.id)
    print(f"certificate revoked: {record.certificate_id}")


def _verify(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    record = ledger.verify_certificate(args.id)
    status = ledger.certificate_status(args.id)
    expiry = record.expiry_date if record.expiry_date != config.NO_EXPIRY else "never"
    print(f"certificate:  {record.certificate_id}")
    print(f"issuer:       {encode_b64(record.issuer)}")
    print(f"recipient:    {encode_b64(record.recipient)}")
    print(f"issued:       {record.issue_date}")
    print(f"expires:      {expiry}")
    print(f"metadata:     {record.metadata_uri}")
    print(f"revoked:      {'yes' if status.revoked else 'no'}")
    print(f"expired:      {'yes' if status.expired else 'no'}")
    print(f"valid:        {'yes' if status.is_valid else 'no'}")


def _events(ledger: TrustRegistry, args: argparse.Namespace) -> None:
    for entry_id, event in ledger.read_events(args.after, args.count):
        print(f"{entry_id}  {type(event).__name__}")


COMMANDS = {
    "init": _init,
    "register-issuer": _register_issuer,
    "set-issuer-status": _set_issuer_status,
    "issue": _issue,
    "revoke": _revoke,
    "verify": _verify,
    "events": _events,
}


# ─── Arg parsing ───

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Trust registry operator CLI",
    )
    parser.add_argument(
        "--redis-url",
        default=server_config.REDIS_URL,
        help=f"Ledger Redis URL (default: {server_config.REDIS_URL})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log ledger activity")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("keygen", help="Generate an identity seed file")
    p.add_argument("--out", required=True, help="Path for the new seed file")

    p = sub.add_parser("init", help="Initialize the registry; the key becomes admin")
    p.add_argument("--key", required=True)

    p = sub.add_parser("register-issuer", help="Register an issuer (admin)")
    p.add_argument("--key", required=True)
    p.add_argument("--authority", required=True,
                   help="Issuer public key, base64 (use --authority=<key>)")
    p.add_argument("--name", required=True)
    p.add_argument("--details", default="")

    p = sub.add_parser("set-issuer-status", help="Activate or deactivate an issuer (admin)")
    p.add_argument("--key", required=True)
    p.add_argument("--authority", required=True,
                   help="Issuer public key, base64 (use --authority=<key>)")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--active", dest="active", action="store_true")
    group.add_argument("--inactive", dest="active", action="store_false")

    p = sub.add_parser("issue", help="Issue a certificate (active issuer)")
    p.add_argument("--key", required=True)
    p.add_argument("--id", required=True, help="Certificate ID")
    p.add_argument("--recipient", required=True,
                   help="Recipient public key, base64 (use --recipient=<key>)")
    p.add_argument("--uri", default="", help="Metadata URI")
    p.add_argument(
        "--expiry",
        type=int,
        default=config.NO_EXPIRY,
        help="Expiry as unix seconds (default: 0, never expires)",
    )

    p = sub.add_parser("revoke", help="Revoke a certificate (its issuer or admin)")
    p.add_argument("--key", required=True)
    p.add_argument("--id", required=True, help="Certificate ID")

    p = sub.add_parser("verify", help="Show a certificate and its validity")
    p.add_argument("id", help="Certificate ID")

    p = sub.add_parser("events", help="List ledger events")
    p.add_argument("--after", default="0-0", help="Stream id to read after")
    p.add_argument("--count", type=int, default=config.EVENT_READ_BATCH)

    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "keygen":
        try:
            _keygen(args)
        except FileExistsError:
            print(f"error: {args.out} already exists")
            sys.exit(1)
        return

    try:
        client = connection.create_client(args.redis_url)
    except CertRegistryError as e:
        print(f"error: {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](TrustRegistry(client), args)
    except CertRegistryError as e:
        print(f"error: {e}")
        sys.exit(1)
    finally:
        connection.close(client)


if __name__ == "__main__":
    main()
