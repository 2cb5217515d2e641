import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from walletpass.config import Settings
from walletpass.crypto.signing import SigningIdentity

ICON = bytes([0x89, 0x50, 0x4E, 0x47])
P12_PASSWORD = "secret"


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _cert(subject_key, subject_cn, issuer_key, issuer_cn, ca: bool) -> x509.Certificate:
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject_cn))
        .issuer_name(_name(issuer_cn))
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def pki():
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = _cert(ca_key, "Test WWDR Intermediate", ca_key, "Test WWDR Intermediate", True)
    key = ec.generate_private_key(ec.SECP256R1())
    cert = _cert(key, "Pass Type ID: pass.test.walletpass", ca_key, "Test WWDR Intermediate", False)
    return SimpleNamespace(ca_key=ca_key, ca_cert=ca_cert, key=key, cert=cert)


@pytest.fixture
def identity(pki) -> SigningIdentity:
    return SigningIdentity(pki.cert, pki.key, [])


@pytest.fixture
def p12_bytes(pki) -> bytes:
    return pkcs12.serialize_key_and_certificates(
        b"walletpass-test",
        pki.key,
        pki.cert,
        None,
        serialization.BestAvailableEncryption(P12_PASSWORD.encode("utf-8")),
    )


@pytest.fixture
def p12_file(tmp_path: Path, p12_bytes: bytes) -> Path:
    p = tmp_path / "certs" / "pass.p12"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(p12_bytes)
    return p


@pytest.fixture
def wwdr_pem(tmp_path: Path, pki) -> Path:
    p = tmp_path / "certs" / "wwdr.pem"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(pki.ca_cert.public_bytes(serialization.Encoding.PEM))
    return p


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def settings(p12_file: Path, wwdr_pem: Path, scratch_dir: Path) -> Settings:
    return Settings(
        cert_p12_path=str(p12_file),
        cert_password=P12_PASSWORD,
        wwdr_cert_path=str(wwdr_pem),
        temp_dir=str(scratch_dir),
        fetch_retries=0,
    )


@pytest.fixture
def icon_file(tmp_path: Path) -> Path:
    p = tmp_path / "assets" / "icon.png"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(ICON)
    return p
