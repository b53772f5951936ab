"""URL helpers for display and deduplication."""

from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


# Tracking parameters stripped during canonicalization
DEFAULT_STRIP_PARAMS: list[str] = [
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
    "gclid",
    "ref",
]


def display_domain(url: str | None) -> str | None:
    """Return the host of a URL with a leading ``www.`` removed.

    Args:
        url: URL to inspect.

    Returns:
        Lowercase host, or None when the URL is empty or has no host.
    """
    if not url:
        return None
    host = urlparse(url).hostname
    if not host:
        return None
    return host.removeprefix("www.")


def canonicalize_url(url: str, strip_params: list[str] | None = None) -> str:
    """Canonicalize a URL for deduplication.

    Lowercases scheme and host, drops the fragment and trailing slash, and
    strips tracking query parameters.

    Args:
        url: The URL to canonicalize.
        strip_params: Query parameters to strip. If None, uses defaults.

    Returns:
        Canonicalized URL string.
    """
    if not url:
        return url

    parsed = urlparse(url)
    path = parsed.path
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")

    to_strip = set(strip_params if strip_params is not None else DEFAULT_STRIP_PARAMS)
    params = parse_qs(parsed.query, keep_blank_values=True)
    kept = {k: v for k, v in sorted(params.items()) if k.lower() not in to_strip}
    query = urlencode(kept, doseq=True)

    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, query, "")
    )
