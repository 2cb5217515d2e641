import base64, binascii, email, logging
from email import policy
from pathlib import Path
from typing import List, NamedTuple, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs7, pkcs12

from ..errors import BadCertificate, MissingTrustCert, SigningFailed

logger = logging.getLogger(__name__)

SMIME_FILENAME = "smime.p7s"
_SIGNATURE_TYPES = ("application/pkcs7-signature", "application/x-pkcs7-signature")

_DIGESTS = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

_OUTPUTS = {
    "der": serialization.Encoding.DER,
    "smime": serialization.Encoding.SMIME,
}

SigningKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

class SigningIdentity(NamedTuple):
    certificate: x509.Certificate
    private_key: SigningKey
    additional_certificates: List[x509.Certificate]

def load_pkcs12(data: bytes, passphrase: str = "") -> SigningIdentity:
    pw = passphrase.encode("utf-8") if passphrase else None
    try:
        key, cert, extra = pkcs12.load_key_and_certificates(data, pw)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise BadCertificate(
            "invalid certificate file: expected a P12 that contains a private key, "
            "and the correct password"
        ) from e
    if key is None or cert is None:
        raise BadCertificate("P12 must contain both a certificate and its private key")
    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise BadCertificate(f"unsupported signing key type: {type(key).__name__}")
    return SigningIdentity(cert, key, list(extra or []))

def load_pkcs12_file(path: str, passphrase: str = "") -> SigningIdentity:
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise BadCertificate(f"could not read the certificate: {path}", entry=path) from e
    return load_pkcs12(data, passphrase)

def load_trust_certificate(path: str) -> x509.Certificate:
    p = Path(path)
    if not p.exists():
        raise MissingTrustCert("WWDR intermediate certificate does not exist", entry=path)
    try:
        data = p.read_bytes()
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except (OSError, ValueError) as e:
        raise BadCertificate(f"could not load trust certificate: {path}", entry=path) from e

def _pkcs7_sign(data: bytes, identity: SigningIdentity, trust: Optional[x509.Certificate],
                algorithm: hashes.HashAlgorithm, encoding: serialization.Encoding) -> bytes:
    builder = (
        pkcs7.PKCS7SignatureBuilder()
        .set_data(data)
        .add_signer(identity.certificate, identity.private_key, algorithm)
    )
    if trust is not None:
        builder = builder.add_certificate(trust)
    return builder.sign(encoding, [pkcs7.PKCS7Options.Binary, pkcs7.PKCS7Options.DetachedSignature])

def sign_manifest(manifest: bytes, identity: SigningIdentity, trust_cert_path: Optional[str] = None,
                  digest: str = "sha256", output: str = "der") -> bytes:
    """
    Detached PKCS#7 signature over the manifest bytes, returned as raw DER.

    With output="smime" the library's S/MIME envelope is requested instead
    and unwrapped by smime_to_der(); "der" asks for the DER blob directly.
    """
    trust = load_trust_certificate(trust_cert_path) if trust_cert_path else None

    algo = _DIGESTS.get(digest.lower())
    if algo is None:
        raise SigningFailed(f"unsupported signature digest: {digest}")
    encoding = _OUTPUTS.get(output)
    if encoding is None:
        raise SigningFailed(f"unsupported signature output: {output}")

    try:
        raw = _pkcs7_sign(manifest, identity, trust, algo(), encoding)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningFailed(f"pkcs7 signing failed: {e}") from e

    der = smime_to_der(raw) if output == "smime" else raw
    if not der:
        raise SigningFailed("signing produced an empty signature")
    logger.debug("manifest signed (%s, %d bytes, trust=%s)", digest, len(der), trust_cert_path or "-")
    return der

def smime_to_der(envelope: Union[bytes, str]) -> bytes:
    """
    Pull the DER signature out of an S/MIME envelope.

    The envelope is parsed as MIME; the signature is the part named
    smime.p7s (or typed application/[x-]pkcs7-signature), whatever the
    boundary or surrounding headers look like.
    """
    if isinstance(envelope, str):
        envelope = envelope.encode("utf-8")
    msg = email.message_from_bytes(envelope, policy=policy.compat32)
    for part in msg.walk():
        if part.is_multipart():
            continue
        if part.get_filename() != SMIME_FILENAME and part.get_content_type() not in _SIGNATURE_TYPES:
            continue
        payload = part.get_payload(decode=True) or b""
        cte = str(part.get("Content-Transfer-Encoding", "")).strip().lower()
        if cte != "base64":
            try:
                payload = base64.b64decode(b"".join(payload.split()), validate=True)
            except (binascii.Error, ValueError) as e:
                raise SigningFailed("signature part is not valid base64") from e
        if not payload:
            raise SigningFailed("signature part of the S/MIME envelope is empty")
        return payload
    raise SigningFailed(f"no {SMIME_FILENAME} part in the S/MIME envelope")
