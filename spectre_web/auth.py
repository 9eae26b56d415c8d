"""
Bearer token check for the collect endpoint.
"""
from __future__ import annotations

import hmac

from flask import abort, current_app, request


def require_auth() -> None:
    """
    Abort with 401 unless the request carries the configured bearer token.

    An empty SPECTRE_TOKEN leaves the endpoint open.
    """
    token = current_app.config.get("SPECTRE_TOKEN", "")
    if not token:
        return

    scheme, _, supplied = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(supplied.strip().encode(), token.encode()):
        abort(401)
