import io, logging, os, zipfile
from pathlib import Path
from typing import Mapping, Optional, Union

from .errors import ArchiveWriteFailed
from .request import locale_dir, strings_entry_name

logger = logging.getLogger(__name__)

# fixed member timestamp: identical inputs give identical containers
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

def _member(name: str, compress: int = zipfile.ZIP_DEFLATED) -> zipfile.ZipInfo:
    zi = zipfile.ZipInfo(name, date_time=ZIP_DATE_TIME)
    zi.compress_type = compress
    zi.external_attr = 0o644 << 16
    return zi

def _directory(name: str) -> zipfile.ZipInfo:
    zi = zipfile.ZipInfo(name.rstrip("/") + "/", date_time=ZIP_DATE_TIME)
    zi.compress_type = zipfile.ZIP_STORED
    zi.external_attr = (0o40755 << 16) | 0x10   # unix dir mode + MS-DOS directory flag
    return zi

def _asset_languages(assets: Mapping[str, bytes]) -> list:
    langs = []
    for name in assets:
        head, sep, _ = name.partition("/")
        if sep and head.endswith(".lproj"):
            lang = head[: -len(".lproj")]
            if lang and lang not in langs:
                langs.append(lang)
    return langs

def _write(z: zipfile.ZipFile, descriptor: bytes, manifest: bytes, signature: bytes,
           locale_tables: Mapping[str, bytes], assets: Mapping[str, bytes]) -> None:
    z.writestr(_member("signature", zipfile.ZIP_STORED), signature)
    z.writestr(_member("manifest.json"), manifest)
    z.writestr(_member("pass.json"), descriptor)

    for lang, table in locale_tables.items():
        try:
            z.writestr(_directory(locale_dir(lang)), b"")
        except (OSError, ValueError) as e:
            raise ArchiveWriteFailed(f"could not create {locale_dir(lang)} folder in zip archive",
                                     entry=locale_dir(lang)) from e
        z.writestr(_member(strings_entry_name(lang)), table)

    # locale-scoped assets for a language without a strings table still get their folder
    for lang in _asset_languages(assets):
        if lang not in locale_tables:
            z.writestr(_directory(locale_dir(lang)), b"")

    for name, data in assets.items():
        z.writestr(_member(name), data)

def assemble(descriptor: bytes, manifest: bytes, signature: bytes,
             locale_tables: Mapping[str, bytes], assets: Mapping[str, bytes],
             sink: Optional[Union[str, Path]] = None) -> bytes:
    """
    Build the container. With a sink path the zip is written there and then
    read back; otherwise it is built in memory. Nothing partial is returned.
    """
    if sink is None:
        buf = io.BytesIO()
        try:
            with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as z:
                _write(z, descriptor, manifest, signature, locale_tables, assets)
        except (OSError, ValueError, zipfile.LargeZipFile) as e:
            raise ArchiveWriteFailed(f"writing pass archive failed: {e}") from e
        return buf.getvalue()

    sink = Path(sink)
    try:
        z = zipfile.ZipFile(sink, "w", zipfile.ZIP_DEFLATED)
    except OSError as e:
        raise ArchiveWriteFailed(f"could not open {sink.name} for writing", entry=str(sink)) from e
    try:
        with z:
            _write(z, descriptor, manifest, signature, locale_tables, assets)
        out = sink.read_bytes()
    except ArchiveWriteFailed:
        _discard(sink)
        raise
    except (OSError, ValueError, zipfile.LargeZipFile) as e:
        _discard(sink)
        raise ArchiveWriteFailed(f"writing {sink.name} failed: {e}", entry=str(sink)) from e
    if not out:
        _discard(sink)
        raise ArchiveWriteFailed(f"{sink.name} is empty after writing", entry=str(sink))
    logger.debug("assembled %s (%d bytes)", sink.name, len(out))
    return out

def _discard(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
