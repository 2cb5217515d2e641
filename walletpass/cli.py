import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer
from pydantic import ValidationError

from .config import configure_logging, load_settings
from .errors import PassBuildError
from .manifest import build_manifest
from .pipeline import build_pass, load_identity, serialize_descriptor
from .request import AssetEntry, PassRequest, local_file, remote_file
from .sources import resolve_assets
from .strings import parse_locale_table, serialize_locale_table

app = typer.Typer(no_args_is_help=True)

def _named(spec: str) -> Tuple[Optional[str], str]:
    # NAME=SOURCE, unless the left side looks like a url scheme or query
    name, sep, src = spec.partition("=")
    if sep and name and ":" not in name and "?" not in name:
        return name, src
    return None, spec

def _load_table(path: Path) -> Dict[str, str]:
    data = path.read_bytes()
    if path.suffix.lower() == ".json":
        obj = json.loads(data.decode("utf-8"))
        if not isinstance(obj, dict):
            raise typer.BadParameter(f"{path} must hold a JSON object")
        return {str(k): str(v) for k, v in obj.items()}
    return parse_locale_table(data)

def _localized(spec: str, option: str, kind: str) -> Tuple[str, Optional[str], str]:
    lang, sep, rest = spec.partition(":")
    if not sep or not lang or not rest:
        raise typer.BadParameter(f"{option} expects LANG:[NAME=]{kind}, got {spec!r}")
    n, src = _named(rest)
    return lang, n, src

def _request(descriptor: Path, asset: List[str], remote: List[str], locale: List[str],
             locale_asset: List[str], locale_remote: List[str], name: Optional[str]) -> PassRequest:
    try:
        data = json.loads(descriptor.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise typer.BadParameter(f"cannot read pass data {descriptor}: {e}")

    locales: Dict[str, Dict[str, str]] = {}
    for spec in locale:
        lang, sep, fp = spec.partition("=")
        if not sep or not lang or not fp:
            raise typer.BadParameter(f"--locale expects LANG=FILE, got {spec!r}")
        try:
            locales[lang] = _load_table(Path(fp))
        except (OSError, ValueError) as e:
            raise typer.BadParameter(f"cannot read strings {fp}: {e}")

    assets: List[AssetEntry] = []
    try:
        for spec in asset:
            n, src = _named(spec)
            assets.append(local_file(src, name=n))
        for spec in locale_asset:
            lang, n, src = _localized(spec, "--locale-asset", "PATH")
            assets.append(local_file(src, name=n, language=lang))
        for spec in remote:
            n, src = _named(spec)
            assets.append(remote_file(src, name=n))
        for spec in locale_remote:
            lang, n, src = _localized(spec, "--locale-remote", "URL")
            assets.append(remote_file(src, name=n, language=lang))
        return PassRequest(descriptor=data, locales=locales, assets=assets, name=name)
    except ValidationError as e:
        raise typer.BadParameter(str(e))

@app.command()
def build(
    descriptor: Path = typer.Argument(..., help="pass.json data (JSON object)"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="output .pkpass (default: <name>.pkpass)"),
    asset: List[str] = typer.Option([], "--asset", help="[NAME=]PATH, repeatable"),
    remote: List[str] = typer.Option([], "--remote", help="[NAME=]URL, repeatable"),
    locale: List[str] = typer.Option([], "--locale", help="LANG=FILE (.json or .strings), repeatable"),
    locale_asset: List[str] = typer.Option([], "--locale-asset", help="LANG:[NAME=]PATH, repeatable"),
    locale_remote: List[str] = typer.Option([], "--locale-remote", help="LANG:[NAME=]URL, repeatable"),
    cert: Optional[str] = typer.Option(None, "--cert", help="PKCS#12 signing certificate"),
    password: Optional[str] = typer.Option(None, "--password", help="certificate password"),
    wwdr: Optional[str] = typer.Option(None, "--wwdr", help="intermediate certificate"),
    name: Optional[str] = typer.Option(None, "--name", help="download file name"),
):
    """Build and sign a pass."""
    settings = load_settings()
    configure_logging(settings.log_level)
    overrides = {k: v for k, v in (("cert_p12_path", cert), ("cert_password", password),
                                   ("wwdr_cert_path", wwdr)) if v is not None}
    settings = settings.model_copy(update=overrides)

    req = _request(descriptor, asset, remote, locale, locale_asset, locale_remote, name)
    try:
        identity = load_identity(settings)
        built = build_pass(req, identity, settings)
    except PassBuildError as e:
        typer.echo(f"{e.code}: {e}", err=True)
        raise typer.Exit(1)

    target = out or Path(built.filename)
    target.write_bytes(built.content)
    typer.echo(str(target))

@app.command()
def manifest(
    descriptor: Path = typer.Argument(..., help="pass.json data (JSON object)"),
    asset: List[str] = typer.Option([], "--asset"),
    remote: List[str] = typer.Option([], "--remote"),
    locale: List[str] = typer.Option([], "--locale"),
    locale_asset: List[str] = typer.Option([], "--locale-asset"),
    locale_remote: List[str] = typer.Option([], "--locale-remote"),
):
    """Print the manifest the given inputs would produce (unsigned)."""
    settings = load_settings()
    configure_logging(settings.log_level)
    req = _request(descriptor, asset, remote, locale, locale_asset, locale_remote, None)
    try:
        tables = {lang: serialize_locale_table(t) for lang, t in req.locales.items()}
        assets = resolve_assets(req.asset_entries().values(), settings)
        m = build_manifest(serialize_descriptor(req.descriptor), tables, assets,
                           algorithm=settings.manifest_digest)
    except PassBuildError as e:
        typer.echo(f"{e.code}: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(m, indent=2))

if __name__ == "__main__":
    app()
