from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lnurl_server.deps import get_db, verify_admin_key
from lnurl_server.errors import ErrorKind, LnurlError
from lnurl_server.schemas import (
    ErrorResponse,
    RegisterRequest,
    RegisterResponse,
    SetZapsRequest,
    UserZapsResponse
)
from lnurl_server.services import users

router = APIRouter(prefix="/v1", tags=["users"])

@router.post(
    "/register",
    response_model=RegisterResponse,
    summary="Register a lightning address",
    responses={
        400: {
            "description": "Name taken or invalid input",
            "model": ErrorResponse,
            "content": {"application/json": {"example": {"status": "ERROR", "reason": "NameTaken"}}}
        },
        500: {"description": "Database failure", "model": ErrorResponse}
    }
)
async def register_route(request: RegisterRequest, db: Session = Depends(get_db)):
    """Claim name@domain for a payee public key"""
    user = users.register(db, request.name, request.pubkey)
    return RegisterResponse(name=user.name)

@router.post(
    "/admin/users/{name}/zaps",
    response_model=UserZapsResponse,
    summary="Enable or disable invoices for a user (Admin Only)",
    responses={
        400: {"model": ErrorResponse},
        401: {"description": "Invalid API key"}
    }
)
async def set_user_zaps(
    name: str,
    request: SetZapsRequest,
    db: Session = Depends(get_db),
    _admin_key: str = Depends(verify_admin_key)
):
    """Flip the zap eligibility flag of a registered user"""
    user = users.get_by_name(db, name)
    if not user:
        raise LnurlError(ErrorKind.USER_NOT_FOUND)

    user = users.set_zaps_enabled(db, user, request.enabled)
    return UserZapsResponse(name=user.name, disabled_zaps=user.disabled_zaps)
