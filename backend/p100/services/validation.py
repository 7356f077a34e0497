from __future__ import annotations
import re
from urllib.parse import unquote

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_\- ]+$")
CHARACTER_ID_RE = re.compile(r"^[a-zA-Z0-9_\-]+$")
USERNAME_MAX = 50
CHARACTER_ID_MAX = 50

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_URL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=\s*['\"]", re.IGNORECASE)


def sanitize_input(value: str | None) -> str:
    """Strip obvious script injection and escape angle brackets. Other characters pass through."""
    if not value:
        return ""
    out = value.strip()
    out = _SCRIPT_RE.sub("", out)
    out = _JS_URL_RE.sub("", out)
    out = _EVENT_HANDLER_RE.sub("", out)
    return out.replace("<", "&lt;").replace(">", "&gt;")


def is_valid_username(username: str) -> bool:
    return 1 <= len(username) <= USERNAME_MAX and bool(USERNAME_RE.match(username))


def is_valid_character_id(character_id: str) -> bool:
    return 1 <= len(character_id) <= CHARACTER_ID_MAX and bool(CHARACTER_ID_RE.match(character_id))


def sanitize_file_name(filename: str) -> str:
    # 'My Art (1).png' -> 'My-Art-1.png'
    decoded = unquote(filename)
    decoded = re.sub(r"\s+", "-", decoded)
    return re.sub(r"[^a-zA-Z0-9\-_.]", "", decoded)


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", (name or "unknown").strip().lower())
