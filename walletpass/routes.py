import posixpath, re
from email.utils import formatdate
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from .config import Settings, load_settings
from .errors import PassBuildError
from .pipeline import build_pass, load_identity
from .request import PassRequest

PKPASS_MEDIA_TYPE = "application/vnd.apple.pkpass"

router = APIRouter(prefix="/api", tags=["pass"])

class _Refused(Exception):
    def __init__(self, reason: str, entry: str):
        super().__init__(reason)
        self.reason = reason
        self.entry = entry

def get_settings() -> Settings:
    return load_settings()

def _confine_local_paths(req: PassRequest, settings: Settings) -> PassRequest:
    # HTTP callers only reach local files under WALLETPASS_ASSET_ROOT
    if not any(a.path is not None for a in req.assets):
        return req
    if not settings.asset_root:
        first = next(a for a in req.assets if a.path is not None)
        raise _Refused("LOCAL_PATHS_NOT_ALLOWED", first.path)
    root = Path(settings.asset_root).resolve()
    assets = []
    for a in req.assets:
        if a.path is None:
            assets.append(a)
            continue
        p = (root / a.path).resolve()
        if p != root and root not in p.parents:
            raise _Refused("PATH_OUTSIDE_ASSET_ROOT", a.path)
        name = a.name or posixpath.basename(a.path.replace("\\", "/"))
        assets.append(a.model_copy(update={"path": str(p), "name": name}))
    return req.model_copy(update={"assets": assets})

@router.post("/pass")
def create_pass(req: PassRequest, settings: Settings = Depends(get_settings)):
    try:
        req = _confine_local_paths(req, settings)
    except _Refused as e:
        return JSONResponse(status_code=400, content={"ok": False, "reason": e.reason, "entry": e.entry})

    try:
        identity = load_identity(settings)
        built = build_pass(req, identity, settings)
    except PassBuildError as e:
        return JSONResponse(status_code=e.http_status, content=e.to_dict())

    filename = re.sub(r'[\r\n"]', "", built.filename)
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-cache, must-revalidate",
        "Expires": "0",
        "Pragma": "public",
        "Last-Modified": formatdate(usegmt=True),
    }
    return Response(content=built.content, media_type=PKPASS_MEDIA_TYPE, headers=headers)
