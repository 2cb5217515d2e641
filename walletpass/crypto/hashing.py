import hashlib, json
from typing import Any

DEFAULT_DIGEST = "sha1"

def content_digest(data: bytes, algorithm: str = DEFAULT_DIGEST) -> str:
    try:
        h = hashlib.new(algorithm.lower())
    except (TypeError, ValueError) as e:
        raise ValueError(f"unsupported digest algorithm: {algorithm}") from e
    h.update(data)
    return h.hexdigest()

def compact_json_bytes(obj: Any) -> bytes:
    # insertion order kept; verifiers parse it, tests compare it byte for byte
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
