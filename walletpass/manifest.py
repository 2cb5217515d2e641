import logging
from typing import Dict, Iterable, Mapping

from .crypto.hashing import DEFAULT_DIGEST, compact_json_bytes, content_digest
from .errors import MissingIcon, UnsupportedDigest
from .request import strings_entry_name

logger = logging.getLogger(__name__)

ICON_NAME = "icon.png"

def has_icon(names: Iterable[str]) -> bool:
    return any(n.lower() == ICON_NAME for n in names)

def build_manifest(descriptor: bytes, locale_tables: Mapping[str, bytes],
                   assets: Mapping[str, bytes], algorithm: str = DEFAULT_DIGEST) -> Dict[str, str]:
    """
    Entry name -> hex digest, in insertion order: pass.json, each
    <lang>.lproj/pass.strings, then every asset. Raises MissingIcon when no
    asset is named icon.png (any case), UnsupportedDigest for an unknown
    algorithm.
    """
    try:
        manifest: Dict[str, str] = {"pass.json": content_digest(descriptor, algorithm)}
        for lang, table in locale_tables.items():
            manifest[strings_entry_name(lang)] = content_digest(table, algorithm)

        for name, data in assets.items():
            manifest[name] = content_digest(data, algorithm)
    except ValueError as e:
        raise UnsupportedDigest(str(e)) from e

    if not has_icon(assets.keys()):
        raise MissingIcon("missing required icon.png file", entry=ICON_NAME)

    logger.debug("manifest built: %d entries (%s)", len(manifest), algorithm)
    return manifest

def serialize_manifest(manifest: Mapping[str, str]) -> bytes:
    return compact_json_bytes(dict(manifest))
