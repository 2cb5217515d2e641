import base64, posixpath
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

RESERVED_NAMES = {"manifest.json", "signature", "pass.json"}
STRINGS_NAME = "pass.strings"

def locale_dir(language: str) -> str:
    return f"{language}.lproj"

def strings_entry_name(language: str) -> str:
    return f"{locale_dir(language)}/{STRINGS_NAME}"

def _check_entry_name(name: str) -> str:
    if not name:
        raise ValueError("empty entry name")
    if name.startswith("/") or "\\" in name:
        raise ValueError(f"entry name must be a relative posix path: {name}")
    parts = name.split("/")
    if any(p in ("", ".", "..") for p in parts):
        raise ValueError(f"bad entry name: {name}")
    if name in RESERVED_NAMES:
        raise ValueError(f"reserved entry name: {name}")
    if len(parts) == 2 and parts[0].endswith(".lproj") and parts[1] == STRINGS_NAME:
        raise ValueError(f"reserved entry name: {name}")
    return name

class AssetEntry(BaseModel):
    """One bundled file. Exactly one of path / url / data_b64 supplies the bytes."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    language: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    data_b64: Optional[str] = None

    @model_validator(mode="after")
    def _one_source(self):
        given = [s for s in (self.path, self.url, self.data_b64) if s is not None]
        if len(given) != 1:
            raise ValueError("asset needs exactly one of path, url, data_b64")
        if self.language is not None and (not self.language or "/" in self.language):
            raise ValueError(f"bad language: {self.language!r}")
        _check_entry_name(self.entry_name)
        return self

    @property
    def source(self) -> str:
        return self.path or self.url or "<inline>"

    @property
    def entry_name(self) -> str:
        name = self.name
        if not name:
            if self.path is not None:
                name = posixpath.basename(self.path.replace("\\", "/"))
            elif self.url is not None:
                name = posixpath.basename(urlparse(self.url).path)
        if self.language:
            return f"{locale_dir(self.language)}/{name}"
        return name

class PassRequest(BaseModel):
    """Everything one build needs. Immutable once constructed."""
    model_config = ConfigDict(frozen=True)

    descriptor: Dict[str, Any]
    locales: Dict[str, Dict[str, str]] = {}
    assets: List[AssetEntry] = []
    name: Optional[str] = None

    @field_validator("locales")
    @classmethod
    def _non_empty_tables(cls, v: Dict[str, Dict[str, str]]):
        for lang, table in v.items():
            if not lang or "/" in lang:
                raise ValueError(f"bad language: {lang!r}")
            if not table:
                raise ValueError(f"translation strings empty for {lang}")
        return v

    def asset_entries(self) -> Dict[str, AssetEntry]:
        # later duplicates replace earlier ones in place
        out: Dict[str, AssetEntry] = {}
        for a in self.assets:
            out[a.entry_name] = a
        return out

def local_file(path: str, name: Optional[str] = None, language: Optional[str] = None) -> AssetEntry:
    return AssetEntry(name=name or "", path=str(path), language=language)

def remote_file(url: str, name: Optional[str] = None, language: Optional[str] = None) -> AssetEntry:
    return AssetEntry(name=name or "", url=url, language=language)

def inline_file(name: str, data: bytes, language: Optional[str] = None) -> AssetEntry:
    return AssetEntry(name=name, data_b64=base64.b64encode(data).decode("ascii"), language=language)

def download_filename(req: PassRequest) -> str:
    name = req.name or "pass"
    if "." not in name:
        name += ".pkpass"
    return name
