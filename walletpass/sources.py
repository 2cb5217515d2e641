import base64, binascii, logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import requests

from .config import Settings
from .errors import ContentUnavailable
from .request import AssetEntry

logger = logging.getLogger(__name__)

def fetch_local(path: str, entry: Optional[str] = None) -> bytes:
    p = Path(path)
    try:
        return p.read_bytes()
    except FileNotFoundError as e:
        raise ContentUnavailable(f"file does not exist: {path}", entry=entry or path) from e
    except OSError as e:
        raise ContentUnavailable(f"could not read {path}: {e}", entry=entry or path) from e

def fetch_remote(url: str, timeout: float = 20.0, retries: int = 0,
                 session: Optional[requests.Session] = None, entry: Optional[str] = None) -> bytes:
    http = session or requests
    last: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            r = http.get(url, timeout=timeout)
            r.raise_for_status()
            return r.content
        except requests.RequestException as e:
            last = e
            logger.debug("fetch %s failed (attempt %d/%d): %s", url, attempt + 1, retries + 1, e)
    raise ContentUnavailable(f"could not fetch {url}: {last}", entry=entry or url) from last

def fetch_inline(data_b64: str, entry: Optional[str] = None) -> bytes:
    try:
        return base64.b64decode(data_b64.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContentUnavailable("inline data is not valid base64", entry=entry) from e

def fetch_entry(a: AssetEntry, settings: Settings, session: Optional[requests.Session] = None) -> bytes:
    name = a.entry_name
    if a.path is not None:
        return fetch_local(a.path, entry=name)
    if a.url is not None:
        return fetch_remote(a.url, timeout=settings.fetch_timeout_s, retries=settings.fetch_retries,
                            session=session, entry=name)
    return fetch_inline(a.data_b64 or "", entry=name)

def resolve_assets(entries: Iterable[AssetEntry], settings: Settings,
                   session: Optional[requests.Session] = None) -> Dict[str, bytes]:
    """
    entry name -> bytes, in caller order. Every entry is fetched; pass
    PassRequest.asset_entries() so a replaced duplicate is never fetched.
    Any unavailable entry aborts.
    """
    out: Dict[str, bytes] = {}
    for a in entries:
        data = fetch_entry(a, settings, session=session)
        logger.debug("resolved %s from %s (%d bytes)", a.entry_name, a.source, len(data))
        out[a.entry_name] = data
    return out
