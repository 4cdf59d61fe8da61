"""Authorization endpoint redirect URL builder."""

from collections.abc import Iterable
from urllib.parse import quote, urlencode


def normalize_scopes(scopes: str | Iterable[str]) -> list[str]:
    """Accept a space-separated string or an iterable of scope names."""
    if isinstance(scopes, str):
        return scopes.split()
    return [s for s in scopes if s]


def build_authorize_url(
    authorize_url: str,
    *,
    client_id: str,
    redirect_uri: str,
    scopes: Iterable[str],
    state: str,
) -> str:
    """Build the URL the user agent is redirected to for sign-in."""
    if not state:
        raise ValueError("state must be a non-empty, unpredictable value")
    query = {
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "client_id": client_id,
        "scope": " ".join(scopes),
        "state": state,
    }
    return f"{authorize_url}?{urlencode(query, quote_via=quote)}"
