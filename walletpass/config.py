import logging, os, tempfile
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    cert_p12_path: str = ""
    cert_password: str = ""
    wwdr_cert_path: str = ""        # empty: sign without an intermediate
    temp_dir: str = ""              # empty: system temp dir
    manifest_digest: str = "sha1"   # deployed verifiers expect sha1
    signature_digest: str = "sha256"
    fetch_timeout_s: float = 20.0
    fetch_retries: int = 2
    asset_root: str = ""            # empty: HTTP callers may not reference local files
    log_level: str = "INFO"

    def scratch_base(self) -> str:
        return self.temp_dir or tempfile.gettempdir()

def _getf(name: str, default: float) -> float:
    raw = os.environ.get(name, str(default))
    try:
        return float(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not a number, using %s", name, raw, default)
        return default

def _geti(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default

def load_settings() -> Settings:
    return Settings(
        cert_p12_path=os.environ.get("WALLETPASS_CERT_P12_PATH", ""),
        cert_password=os.environ.get("WALLETPASS_CERT_PASSWORD", ""),
        wwdr_cert_path=os.environ.get("WALLETPASS_WWDR_CERT_PATH", ""),
        temp_dir=os.environ.get("WALLETPASS_TEMP_DIR", ""),
        manifest_digest=os.environ.get("WALLETPASS_MANIFEST_DIGEST", "sha1"),
        signature_digest=os.environ.get("WALLETPASS_SIGNATURE_DIGEST", "sha256"),
        fetch_timeout_s=_getf("WALLETPASS_FETCH_TIMEOUT_S", 20.0),
        fetch_retries=max(0, _geti("WALLETPASS_FETCH_RETRIES", 2)),
        asset_root=os.environ.get("WALLETPASS_ASSET_ROOT", ""),
        log_level=os.environ.get("WALLETPASS_LOG_LEVEL", "INFO"),
    )

def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("walletpass")
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not root.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(h)
