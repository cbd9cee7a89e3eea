"""URL folding: one query parameter per line."""

QUERY_INDENT = "  "


def fold_url(url: str) -> str:
    """Fold the query string of a URL onto indented lines.

    ``https://a.com/x?y=1&z=2`` becomes::

        https://a.com/x
          ?y=1
          &z=2

    Already folded input gives the same result, and a URL without ``?``
    is returned unchanged.
    """
    flat = "".join(line.strip() for line in url.splitlines())
    if "?" not in flat:
        return flat
    base, query = flat.split("?", 1)
    params = [param for param in query.split("&") if param]
    if not base or not params:
        return flat
    lines = [base, f"{QUERY_INDENT}?{params[0]}"]
    lines.extend(f"{QUERY_INDENT}&{param}" for param in params[1:])
    return "\n".join(lines)
