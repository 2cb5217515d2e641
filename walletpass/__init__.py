"""
walletpass: build signed .pkpass bundles.

pass.json + <lang>.lproj/pass.strings + assets are hashed into manifest.json,
the manifest gets a detached PKCS#7 signature, and everything is zipped.
"""
from .errors import (
    ArchiveWriteFailed,
    BadCertificate,
    ContentUnavailable,
    MissingIcon,
    InvalidPassData,
    MissingTrustCert,
    PassBuildError,
    SigningFailed,
    UnsupportedDigest,
)
from .pipeline import PassBuild, build_pass, load_identity
from .request import AssetEntry, PassRequest, inline_file, local_file, remote_file

__version__ = "0.1.0"
