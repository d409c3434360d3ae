from __future__ import annotations

import urllib.parse

from starlette.requests import Request

LOOPBACK_HOSTS = {"localhost", "127.0.0.1"}


def parse_redirect_uri(uri: object) -> urllib.parse.ParseResult | None:
    if not isinstance(uri, str) or not uri.strip():
        return None
    try:
        parsed = urllib.parse.urlparse(uri)
        # Accessing .port validates the port component.
        _ = parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed


def is_allowed_redirect_uri(parsed: urllib.parse.ParseResult) -> bool:
    if parsed.scheme == "https":
        return True
    return parsed.hostname in LOOPBACK_HOSTS


def append_query_params(url: str, params: dict[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    # Existing pairs keep their original encoding; only replaced keys are dropped.
    kept = [
        pair
        for pair in parsed.query.split("&")
        if pair and urllib.parse.unquote_plus(pair.split("=", 1)[0]) not in params
    ]
    kept.append(urllib.parse.urlencode(params))
    return urllib.parse.urlunparse(parsed._replace(query="&".join(kept)))


def request_base_url(request: Request) -> str:
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "https"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if not host:
        host = request.url.netloc
    # Proxies may send a comma separated chain; the first hop is the client-facing one.
    proto = proto.split(",")[0].strip()
    host = host.split(",")[0].strip()
    return f"{proto}://{host}"
