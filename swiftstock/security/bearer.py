from __future__ import annotations

from fastapi import FastAPI, Request

from swiftstock.errors import AuthenticationError
from swiftstock.security.tokens import bearer_token, decode_token


def load_principal(request: Request) -> None:
    request.state.principal = None
    request.state.auth_error = None

    header = request.headers.get('authorization')
    token = bearer_token(header)
    if token is None:
        if header:
            request.state.auth_error = 'Unauthorized: No valid token provided'
        return
    try:
        request.state.principal = decode_token(token)
    except AuthenticationError as exc:
        request.state.auth_error = exc.message


def install_bearer_auth_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def bearer_auth_middleware(request: Request, call_next):
        # Routes decide whether a principal is required.
        load_principal(request)
        return await call_next(request)
