from __future__ import annotations

import hmac
import os
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class Client:
    """Authenticated API client.

    Security notes:
    - client_id comes from the server-side key mapping, never from the caller.

    """

    client_id: str


def _parse_api_keys(raw: str) -> Dict[str, Client]:
    """Parse BLOCKIFY_API_KEYS into an API key -> Client mapping.

    Format (semicolon-separated entries):
      <APIKEY>:<CLIENT_ID>;

    Example:
      BLOCKIFY_API_KEYS="k1:editor;k2:importer"

    Security notes:
    - Env var is trusted server configuration.
    - Malformed entries are ignored (fail-closed by omission).

    """

    out: Dict[str, Client] = {}
    for entry in (raw or "").split(";"):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, client_id = entry.partition(":")
        key, client_id = key.strip(), client_id.strip()
        if not sep or not key or not client_id:
            continue
        out[key] = Client(client_id=client_id)
    return out


def load_auth_config() -> Dict[str, Client]:
    return _parse_api_keys(os.environ.get("BLOCKIFY_API_KEYS", ""))


def requires_auth(mapping: Dict[str, Client]) -> bool:
    """Return True if the API should require authentication.

    Policy:
    - If BLOCKIFY_REQUIRE_AUTH=1, always require.
    - Else, require iff at least one API key is configured.

    """

    if os.environ.get("BLOCKIFY_REQUIRE_AUTH", "").strip().lower() in {"1", "true", "yes"}:
        return True
    return bool(mapping)


def authenticate(api_key: Optional[str], mapping: Dict[str, Client]) -> Optional[Client]:
    """Return the Client owning api_key, or None.

    Every configured key is compared in constant time so the loop does not
    exit early on a match.
    """

    if not api_key:
        return None

    found: Optional[Client] = None
    for key, client in mapping.items():
        if hmac.compare_digest(key.encode("utf-8"), api_key.encode("utf-8")):
            found = client
    return found
