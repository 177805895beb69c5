from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

PAGE_PARAM = "_pg"

# Status fragments that mark a listing as no longer for sale.
INACTIVE_STATUS_TOKENS = ("not active", "inactive", "sold", "pending")


def build_page_url(base_url: str, page: int) -> str:
    """
    Build the URL of results page `page` for a listings index, e.g.
    'https://example.com/mylistings.html' -> '.../mylistings.html?_pg=2'.
    Existing query params are kept but re-encoded (e.g. %20 becomes +);
    a previous _pg value is replaced.
    """
    u = urlparse(base_url)
    params = [(k, v) for k, v in parse_qsl(u.query, keep_blank_values=True) if k != PAGE_PARAM]
    params.append((PAGE_PARAM, str(page)))
    return urlunparse((u.scheme, u.netloc, u.path, u.params, urlencode(params), u.fragment))


def is_inactive_status(status: str | None) -> bool:
    s = (status or "").lower()
    return any(tok in s for tok in INACTIVE_STATUS_TOKENS)
