from typing import Any, Dict, Optional


class PassBuildError(RuntimeError):
    """
    Terminal failure of a single pass build.

    code  - stable reason string returned to HTTP/CLI callers
    stage - pipeline stage that failed: resolve | manifest | sign | archive
    entry - entry name or path the failure is about, when there is one
    """
    code = "PASS_BUILD_FAILED"
    stage = "build"
    http_status = 500

    def __init__(self, message: str, entry: Optional[str] = None):
        super().__init__(message)
        self.entry = entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "reason": self.code,
            "stage": self.stage,
            "entry": self.entry,
            "detail": str(self),
        }


class MissingIcon(PassBuildError):
    code = "MISSING_ICON"
    stage = "manifest"
    http_status = 422


class ContentUnavailable(PassBuildError):
    code = "CONTENT_UNAVAILABLE"
    stage = "resolve"
    http_status = 422


class BadCertificate(PassBuildError):
    code = "BAD_CERTIFICATE"
    stage = "sign"


class MissingTrustCert(PassBuildError):
    code = "MISSING_TRUST_CERT"
    stage = "sign"


class SigningFailed(PassBuildError):
    code = "SIGNING_FAILED"
    stage = "sign"


class ArchiveWriteFailed(PassBuildError):
    code = "ARCHIVE_WRITE_FAILED"
    stage = "archive"


class InvalidPassData(PassBuildError):
    code = "INVALID_PASS_DATA"
    stage = "manifest"
    http_status = 422


class UnsupportedDigest(PassBuildError):
    code = "UNSUPPORTED_DIGEST"
    stage = "manifest"
