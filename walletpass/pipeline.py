import logging
from typing import Dict, NamedTuple, Optional

import requests

from .archive import assemble
from .config import Settings, load_settings
from .crypto.hashing import compact_json_bytes
from .crypto.signing import SigningIdentity, load_pkcs12_file, sign_manifest
from .errors import ArchiveWriteFailed, BadCertificate, InvalidPassData, PassBuildError
from .manifest import build_manifest, serialize_manifest
from .request import PassRequest, download_filename
from .scratch import scratch_area
from .sources import resolve_assets
from .strings import serialize_locale_table

logger = logging.getLogger(__name__)

class PassBuild(NamedTuple):
    content: bytes
    manifest: Dict[str, str]
    filename: str

def serialize_descriptor(descriptor) -> bytes:
    try:
        return compact_json_bytes(descriptor)
    except (TypeError, ValueError) as e:
        raise InvalidPassData(f"pass data is not JSON serializable: {e}", entry="pass.json") from e

def load_identity(settings: Settings) -> SigningIdentity:
    if not settings.cert_p12_path:
        raise BadCertificate("no signing certificate configured (WALLETPASS_CERT_P12_PATH)")
    return load_pkcs12_file(settings.cert_p12_path, settings.cert_password)

def build_pass(req: PassRequest, identity: SigningIdentity, settings: Optional[Settings] = None,
               session: Optional[requests.Session] = None) -> PassBuild:
    """
    Resolve -> manifest -> sign -> assemble, for one request. Either the
    whole container comes back or a PassBuildError is raised; the scratch
    area is gone in both cases.
    """
    settings = settings or load_settings()
    filename = download_filename(req)
    logger.info("building %s: %d locale(s), %d asset(s)", filename, len(req.locales), len(req.assets))

    try:
        descriptor = serialize_descriptor(req.descriptor)
        tables = {lang: serialize_locale_table(t) for lang, t in req.locales.items()}
        assets = resolve_assets(req.asset_entries().values(), settings, session=session)

        manifest = build_manifest(descriptor, tables, assets, algorithm=settings.manifest_digest)
        manifest_bytes = serialize_manifest(manifest)
        signature = sign_manifest(
            manifest_bytes,
            identity,
            trust_cert_path=settings.wwdr_cert_path or None,
            digest=settings.signature_digest,
        )

        try:
            with scratch_area(settings.scratch_base()) as work:
                (work / "manifest.json").write_bytes(manifest_bytes)
                (work / "signature").write_bytes(signature)
                content = assemble(descriptor, manifest_bytes, signature, tables, assets,
                                   sink=work / "pass.pkpass")
        except OSError as e:
            raise ArchiveWriteFailed(f"could not stage build artifacts in {settings.scratch_base()}: {e}") from e
    except PassBuildError as e:
        logger.warning("build of %s failed: %s stage=%s entry=%s: %s", filename, e.code, e.stage, e.entry, e)
        raise

    logger.info("built %s (%d bytes, %d manifest entries)", filename, len(content), len(manifest))
    return PassBuild(content, manifest, filename)
