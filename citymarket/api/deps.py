# citymarket/api/deps.py
from fastapi import HTTPException, Request
from ..auth import AuthResult, ConfigurationError

def get_store(request: Request):
    return request.app.state.store

def get_auth(request: Request):
    return request.app.state.auth

def raise_for_auth_error(result: AuthResult):
    """Map a failed auth result onto an HTTP error carrying its message."""
    if result.ok:
        return
    status_code = 503 if isinstance(result.error, ConfigurationError) else 400
    raise HTTPException(status_code=status_code, detail=result.error.message)
