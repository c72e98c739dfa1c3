"""Tests for the operator CLI against a shared fakeredis server."""

import fakeredis
import pytest

from TrustRegistry.registry_cli import cli
from TrustRegistry.registry_shared.signing import encode_b64


@pytest.fixture(autouse=True)
def server(monkeypatch):
    """Every CLI invocation connects to the same in-memory server."""
    s = fakeredis.FakeServer()
    monkeypatch.setattr(cli.connection, "create_client",
                        lambda url=None: fakeredis.FakeRedis(server=s))
    return s


def _keygen(tmp_path, capsys, name):
    path = tmp_path / name
    cli.main(["keygen", "--out", str(path)])
    out = capsys.readouterr().out
    return str(path), out.strip().split("public key: ")[1]


@pytest.fixture
def keys(tmp_path, capsys):
    return {name: _keygen(tmp_path, capsys, f"{name}.key")
            for name in ("admin", "issuer", "recipient")}


def _setup(keys):
    admin_key, _ = keys["admin"]
    _, issuer_pub = keys["issuer"]
    cli.main(["init", "--key", admin_key])
    cli.main(["register-issuer", "--key", admin_key,
              f"--authority={issuer_pub}", "--name", "Acme U"])


# ── Keys ──


def test_keygen_writes_hex_seed(keys):
    path, pub = keys["admin"]
    identity = cli.load_identity(path)
    assert encode_b64(identity.public_key) == pub


def test_keygen_refuses_overwrite(keys, capsys):
    path, _ = keys["admin"]
    with pytest.raises(SystemExit) as exc:
        cli.main(["keygen", "--out", path])
    assert exc.value.code == 1
    assert "already exists" in capsys.readouterr().out


# ── Lifecycle ──


def test_issue_verify_revoke(keys, capsys):
    _setup(keys)
    issuer_key, _ = keys["issuer"]
    _, recipient_pub = keys["recipient"]

    cli.main(["issue", "--key", issuer_key, "--id", "CERT-001",
              f"--recipient={recipient_pub}", "--uri", "ipfs://QmTest123"])
    capsys.readouterr()

    cli.main(["verify", "CERT-001"])
    out = capsys.readouterr().out
    assert f"recipient:    {recipient_pub}" in out
    assert "expires:      never" in out
    assert "valid:        yes" in out

    cli.main(["revoke", "--key", issuer_key, "--id", "CERT-001"])
    cli.main(["verify", "CERT-001"])
    out = capsys.readouterr().out
    assert "revoked:      yes" in out
    assert "valid:        no" in out


def test_deactivated_issuer_cannot_issue(keys, capsys):
    _setup(keys)
    admin_key, _ = keys["admin"]
    issuer_key, issuer_pub = keys["issuer"]
    _, recipient_pub = keys["recipient"]

    cli.main(["set-issuer-status", "--key", admin_key,
              f"--authority={issuer_pub}", "--inactive"])
    assert "is now inactive" in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc:
        cli.main(["issue", "--key", issuer_key, "--id", "CERT-001",
                  f"--recipient={recipient_pub}"])
    assert exc.value.code == 1
    assert "is not active" in capsys.readouterr().out


def test_keys_starting_with_dash(keys, capsys):
    admin_key, _ = keys["admin"]
    # a leading 0xf8 byte encodes to "-" in URL-safe base64
    authority = encode_b64(b"\xf8" + b"\x00" * 31)
    assert authority.startswith("-")

    cli.main(["init", "--key", admin_key])
    cli.main(["register-issuer", "--key", admin_key,
              f"--authority={authority}", "--name", "Dash U"])
    assert f"issuer registered: Dash U ({authority})" in capsys.readouterr().out


# ── Errors ──


def test_non_admin_register_fails(keys, capsys):
    admin_key, _ = keys["admin"]
    issuer_key, issuer_pub = keys["issuer"]
    cli.main(["init", "--key", admin_key])

    with pytest.raises(SystemExit):
        cli.main(["register-issuer", "--key", issuer_key,
                  f"--authority={issuer_pub}", "--name", "Acme U"])
    assert "error: Signer is not the registry admin" in capsys.readouterr().out


def test_verify_unknown_certificate(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["verify", "NOPE"])
    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().out


def test_bad_authority_key(keys, capsys):
    admin_key, _ = keys["admin"]
    short_key = encode_b64(b"\x01" * 8)
    cli.main(["init", "--key", admin_key])

    with pytest.raises(SystemExit):
        cli.main(["register-issuer", "--key", admin_key,
                  f"--authority={short_key}", "--name", "Acme U"])
    assert "expected 32 bytes" in capsys.readouterr().out


# ── Events ──


def test_events_lists_changes(keys, capsys):
    _setup(keys)
    capsys.readouterr()

    cli.main(["events"])
    lines = capsys.readouterr().out.strip().splitlines()
    assert [line.split()[1] for line in lines] == ["RegistryInitialized", "IssuerRegistered"]

    first_id = lines[0].split()[0]
    cli.main(["events", "--after", first_id])
    assert capsys.readouterr().out.split()[1] == "IssuerRegistered"


def test_events_malformed_cursor(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["events", "--after", "garbage"])
    assert exc.value.code == 1
    assert "error: Invalid event stream id" in capsys.readouterr().out
