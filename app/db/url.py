from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


_ASYNC_DRIVERS = {
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "postgresql+asyncpg": "postgresql+psycopg",
    "postgresql+psycopg2": "postgresql+psycopg",
}


def normalize_database_url(url: str) -> str:
    """Point postgres URLs at the async psycopg driver and translate ``ssl=`` to ``sslmode=``."""
    url = (url or "").strip()
    if not url:
        return url

    parts = urlsplit(url)
    scheme = _ASYNC_DRIVERS.get(parts.scheme, parts.scheme)

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    ssl_key = next((key for key in query if key.lower() == "ssl"), None)
    if ssl_key is not None:
        ssl_val = query.pop(ssl_key).lower().strip()
        if "sslmode" not in query:
            if ssl_val in {"0", "false", "no", "off", "disable"}:
                query["sslmode"] = "disable"
            elif ssl_val in {"require", "verify-ca", "verify-full"}:
                query["sslmode"] = ssl_val
            else:
                query["sslmode"] = "require"

    new_query = urlencode(query, doseq=True)
    return urlunsplit((scheme, parts.netloc, parts.path, new_query, parts.fragment))
