"""Request authentication.

Session issuance lives elsewhere. All this does is approve or reject a request
before it can touch the document.
"""

import hmac

from starlette.requests import Request


ANONYMOUS = "anonymous"


def token_from_request(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return request.cookies.get("session") or None


class TokenAuthenticator:
    """Approves requests carrying the shared household token.

    Without a configured token nothing is approved, unless anonymous access
    was switched on (local development only).
    """

    def __init__(self, token: str | None, *, allow_anonymous: bool = False) -> None:
        self.token = token
        self.allow_anonymous = allow_anonymous

    def authenticate(self, request: Request) -> str | None:
        if self.token is None:
            return ANONYMOUS if self.allow_anonymous else None
        given = token_from_request(request)
        if given is None:
            return None
        if not hmac.compare_digest(given.encode(), self.token.encode()):
            return None
        return "household"
