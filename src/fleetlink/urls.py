"""Asset URL resolution against the current backend address."""

import re

# Object storage links are served directly on port 9000; the backend host
# proxies them under /storage/.
_OBJECT_STORAGE_URL = re.compile(r"^https?://[^/]+:9000/(.+)$")
_SCHEME_AND_HOST = re.compile(r"^(https?://[^:/]+)")


def resolve_asset_url(path: str | None, base_address: str | None) -> str | None:
    """
    Turn an asset reference into an absolute URL.

    Object storage URLs are rewritten to ``<scheme://host>/storage/<path>`` of
    the backend, other absolute URLs pass through, and relative paths are
    joined to ``base_address``. Returns None when a relative path cannot be
    resolved because no backend address is known yet.
    """
    if not path:
        return None

    match = _OBJECT_STORAGE_URL.match(path)
    if match:
        host = _SCHEME_AND_HOST.match(base_address) if base_address else None
        if host:
            return f"{host.group(1)}/storage/{match.group(1)}"
        return path

    if path.startswith(("http://", "https://")):
        return path

    if not base_address:
        return None
    return f"{base_address.rstrip('/')}/{path.lstrip('/')}"
