import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs7, pkcs12

from walletpass.crypto import signing
from walletpass.crypto.signing import (
    load_pkcs12,
    load_pkcs12_file,
    load_trust_certificate,
    sign_manifest,
    smime_to_der,
)
from walletpass.errors import BadCertificate, MissingTrustCert, SigningFailed

from .conftest import P12_PASSWORD

MANIFEST = b'{"pass.json":"0e5f34d0c2ab43c4c63f2a4a0ba4ab2bdbd0f1d3","icon.png":"a9993e364706816aba3e25717850c26c9cd0d89d"}'
BLOB = bytes(range(256)) * 3


def _b64_lines(data: bytes, width: int = 64) -> str:
    s = base64.b64encode(data).decode("ascii")
    return "\n".join(s[i:i + width] for i in range(0, len(s), width))


def _envelope(boundary: str, blob: bytes, noise: str = "", newline: str = "\n", cte: bool = True) -> bytes:
    lines = [
        "MIME-Version: 1.0",
        f'Content-Type: multipart/signed; protocol="application/x-pkcs7-signature"; micalg="sha-256"; boundary="{boundary}"',
    ]
    if noise:
        lines.append(noise)
    lines += [
        "",
        "This is an S/MIME signed message",
        "",
        f"--{boundary}",
        "Content-Type: application/octet-stream",
        "",
        MANIFEST.decode("ascii"),
        f"--{boundary}",
        'Content-Type: application/x-pkcs7-signature; name="smime.p7s"',
    ]
    if cte:
        lines.append("Content-Transfer-Encoding: base64")
    lines += [
        'Content-Disposition: attachment; filename="smime.p7s"',
        "",
        _b64_lines(blob),
        "",
        f"--{boundary}--",
        "",
    ]
    return newline.join(lines).encode("ascii")


# ---- S/MIME -> DER conversion ----

def test_smime_to_der_extracts_exact_blob():
    assert smime_to_der(_envelope("----3F2A9C", BLOB)) == BLOB


@pytest.mark.parametrize(
    "boundary, noise, newline",
    [
        ("----=_Part_1_2093", "X-Mailer: something\nX-Trace: a=b; c=d", "\n"),
        ("------------ABCDEF", "", "\r\n"),
        ("simple", "Subject: ignored", "\r\n"),
    ],
)
def test_smime_to_der_ignores_header_noise(boundary, noise, newline):
    noise = noise.replace("\n", newline)
    assert smime_to_der(_envelope(boundary, BLOB, noise=noise, newline=newline)) == BLOB


def test_smime_to_der_accepts_str():
    assert smime_to_der(_envelope("----B", BLOB).decode("ascii")) == BLOB


def test_smime_to_der_without_transfer_encoding_header():
    assert smime_to_der(_envelope("----B", BLOB, cte=False)) == BLOB


def test_smime_to_der_rejects_undecodable_body():
    env = (
        b'Content-Type: multipart/signed; boundary="----B"\n\n'
        b"------B\nContent-Type: application/octet-stream\n\n{}\n"
        b'------B\nContent-Type: application/x-pkcs7-signature\n'
        b'Content-Disposition: attachment; filename="smime.p7s"\n\n'
        b"this is not base64 !!\n------B--\n"
    )
    with pytest.raises(SigningFailed, match="not valid base64"):
        smime_to_der(env)


def test_smime_to_der_without_signature_part():
    env = (
        b'Content-Type: multipart/mixed; boundary="----X"\n\n'
        b"------X\nContent-Type: text/plain\n\nhello\n------X--\n"
    )
    with pytest.raises(SigningFailed):
        smime_to_der(env)


# ---- PKCS#12 / trust certificate loading ----

def test_load_pkcs12(p12_bytes, pki):
    ident = load_pkcs12(p12_bytes, P12_PASSWORD)
    assert ident.certificate == pki.cert
    assert ident.private_key.public_key().public_numbers() == pki.key.public_key().public_numbers()


def test_load_pkcs12_wrong_password(p12_bytes):
    with pytest.raises(BadCertificate):
        load_pkcs12(p12_bytes, "wrong")


def test_load_pkcs12_garbage():
    with pytest.raises(BadCertificate):
        load_pkcs12(b"not a p12 file", P12_PASSWORD)


def test_load_pkcs12_without_private_key(pki):
    data = pkcs12.serialize_key_and_certificates(b"x", None, pki.cert, None, serialization.NoEncryption())
    with pytest.raises(BadCertificate):
        load_pkcs12(data)


def test_load_pkcs12_file_missing(tmp_path):
    with pytest.raises(BadCertificate) as ei:
        load_pkcs12_file(str(tmp_path / "nope.p12"), P12_PASSWORD)
    assert ei.value.entry.endswith("nope.p12")


def test_load_trust_certificate_pem_and_der(tmp_path, pki, wwdr_pem):
    assert load_trust_certificate(str(wwdr_pem)) == pki.ca_cert
    der = tmp_path / "wwdr.cer"
    der.write_bytes(pki.ca_cert.public_bytes(serialization.Encoding.DER))
    assert load_trust_certificate(str(der)) == pki.ca_cert


def test_load_trust_certificate_unparsable(tmp_path):
    p = tmp_path / "bad.pem"
    p.write_bytes(b"-----BEGIN CERTIFICATE-----\nnope\n-----END CERTIFICATE-----\n")
    with pytest.raises(BadCertificate):
        load_trust_certificate(str(p))


# ---- signing ----

def test_sign_manifest_returns_raw_der(identity, pki, wwdr_pem):
    sig = sign_manifest(MANIFEST, identity, trust_cert_path=str(wwdr_pem))
    assert sig[:1] == b"\x30"
    assert b"smime.p7s" not in sig
    assert b"MIME-Version" not in sig
    # detached: manifest bytes are not embedded
    assert MANIFEST not in sig
    certs = pkcs7.load_der_pkcs7_certificates(sig)
    assert pki.cert in certs
    assert pki.ca_cert in certs


def test_sign_manifest_without_trust_cert(identity, pki):
    sig = sign_manifest(MANIFEST, identity)
    assert pkcs7.load_der_pkcs7_certificates(sig) == [pki.cert]


def test_sign_manifest_smime_output_converts_to_der(identity, pki, wwdr_pem):
    sig = sign_manifest(MANIFEST, identity, trust_cert_path=str(wwdr_pem), output="smime")
    assert sig[:1] == b"\x30"
    certs = pkcs7.load_der_pkcs7_certificates(sig)
    assert pki.cert in certs
    assert pki.ca_cert in certs


def test_missing_trust_cert_fails_before_signing(identity, tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(signing, "_pkcs7_sign", lambda *a, **k: calls.append(a) or b"")
    with pytest.raises(MissingTrustCert) as ei:
        sign_manifest(MANIFEST, identity, trust_cert_path=str(tmp_path / "missing.pem"))
    assert calls == []
    assert ei.value.code == "MISSING_TRUST_CERT"


def test_signing_primitive_failure_skips_conversion(identity, monkeypatch):
    def boom(*a, **k):
        raise ValueError("primitive failed")

    converted = []
    monkeypatch.setattr(signing, "_pkcs7_sign", boom)
    monkeypatch.setattr(signing, "smime_to_der", lambda env: converted.append(env) or b"x")
    with pytest.raises(SigningFailed):
        sign_manifest(MANIFEST, identity, output="smime")
    assert converted == []


def test_unsupported_digest(identity):
    with pytest.raises(SigningFailed):
        sign_manifest(MANIFEST, identity, digest="md5")
