import re
from typing import Dict, Mapping

_ESCAPES = {
    "\\": "\\\\",
    "\"": "\\\"",
    "\r": "\\r",
    "\n": "\\n",
}
_UNESCAPES = {"\\": "\\", "\"": "\"", "r": "\r", "n": "\n"}

_LINE = re.compile(r'^"((?:[^"\\]|\\.)*)" = "((?:[^"\\]|\\.)*)";$')
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)

def escape_locale_string(s: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in s)

def unescape_locale_string(s: str) -> str:
    return _ESCAPED.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), s)

def serialize_locale_table(strings: Mapping[str, str]) -> bytes:
    """
    One line per pair, insertion order:
      "<escaped-key>" = "<escaped-value>";\\n
    """
    out = []
    for k, v in strings.items():
        out.append(f'"{escape_locale_string(str(k))}" = "{escape_locale_string(str(v))}";\n')
    return "".join(out).encode("utf-8")

def parse_locale_table(data: bytes) -> Dict[str, str]:
    table: Dict[str, str] = {}
    text = data.decode("utf-8-sig")
    for lineno, line in enumerate(text.split("\n"), start=1):
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        m = _LINE.match(line)
        if not m:
            raise ValueError(f"bad strings line {lineno}: {line[:60]}")
        table[unescape_locale_string(m.group(1))] = unescape_locale_string(m.group(2))
    return table
