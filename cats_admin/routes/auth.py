"""
Authentication Routes
Wallet signature verification, session lookup, logout
"""

import logging
from fastapi import APIRouter, HTTPException, Response, status, Depends
from pydantic import BaseModel, Field
from cats_admin.config import settings
from cats_admin.auth import create_access_token, get_current_user, is_admin
from cats_admin.services.grails_client import grails_client

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response Models
class VerifyRequest(BaseModel):
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    success: bool = True
    address: str
    is_admin: bool


@router.post("/verify", response_model=SessionResponse)
async def verify(payload: VerifyRequest, response: Response):
    """
    Verify a signed login message and start a dashboard session

    Process:
    1. Forward message/signature to the marketplace auth endpoint
    2. Check the verified address against ADMIN_ADDRESSES
    3. Issue a session JWT in an httpOnly cookie
    """

    verified = await grails_client.verify_signature(payload.message, payload.signature)
    address = verified["address"].lower()
    authorized = is_admin(address)

    # Do not log the admin list or the address
    logger.info(f"[verify] Admin check: {'authorized' if authorized else 'denied'}")

    if not authorized:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Your wallet address ({address}) is not authorized."
        )

    token = create_access_token({"address": address})
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.APP_ENV == "production",
        samesite="lax",
        max_age=settings.JWT_EXPIRATION_HOURS * 3600,
        path="/",
    )

    return {"success": True, "address": address, "is_admin": True}


@router.get("/me", response_model=SessionResponse)
async def me(current_user: dict = Depends(get_current_user)):
    """Current session wallet and whether it is an admin"""
    return {
        "success": True,
        "address": current_user["address"],
        "is_admin": is_admin(current_user["address"]),
    }


@router.post("/logout")
async def logout(response: Response):
    """Clear the session cookie"""
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True, "message": "Logged out"}
