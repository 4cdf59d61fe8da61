"""Token endpoint request construction for code and refresh grants."""

from base64 import b64encode
from urllib.parse import urlencode

from evesso.oauth.types import (
    AuthorizationCodeGrant,
    ClientCredentials,
    GrantRequest,
    TokenRequest,
)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def build_basic_authorization(credentials: ClientCredentials) -> str:
    """HTTP Basic credentials: base64 of ``client_id:secret_key``."""
    secret = credentials.secret_key.get_secret_value()
    raw = f"{credentials.client_id}:{secret}".encode()
    return f"Basic {b64encode(raw).decode('ascii')}"


def build_grant_form(grant: GrantRequest) -> dict[str, str]:
    """Form fields for a grant; ``scope`` only for narrowed refresh grants."""
    if isinstance(grant, AuthorizationCodeGrant):
        return {"grant_type": grant.grant_type, "code": grant.code}
    form = {"grant_type": grant.grant_type, "refresh_token": grant.refresh_token}
    if grant.scopes:
        form["scope"] = " ".join(grant.scopes)
    return form


def build_token_request(
    grant: GrantRequest,
    credentials: ClientCredentials,
    *,
    host: str,
    user_agent: str,
) -> TokenRequest:
    """Build the form and headers posted to the token endpoint."""
    return TokenRequest(
        form=build_grant_form(grant),
        headers={
            "Host": host,
            "Authorization": build_basic_authorization(credentials),
            "Content-Type": FORM_CONTENT_TYPE,
            "User-Agent": user_agent,
        },
    )


def encode_form(request: TokenRequest) -> str:
    """URL-encode the request form as the POST body."""
    return urlencode(request.form)
