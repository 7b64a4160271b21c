"""
ChatSphere Backend: Auth Route Handlers
=======================================

What:  POST /api/auth/register, POST /api/auth/login, POST /api/auth/logout,
       GET /api/auth/me.
How:   Delegates to AuthService; the token is returned in the body and sent
       back by the client as `Authorization: Bearer <token>`.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.database import get_db_session
from chatsphere.dependencies import get_current_user
from chatsphere.models.user import User
from chatsphere.schemas.common import APIResponse, ErrorResponse
from chatsphere.schemas.user import AuthData, LoginRequest, RegisterRequest, UserData, UserOut
from chatsphere.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=APIResponse[AuthData],
    responses={400: {"description": "Invalid input or email taken", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[AuthData]:
    data = await auth_service.register(
        db=db, name=body.name, email=body.email, password=body.password
    )
    return APIResponse(message="User registered successfully", data=data)


@router.post(
    "/login",
    response_model=APIResponse[AuthData],
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Sign in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[AuthData]:
    data = await auth_service.login(db=db, email=body.email, password=body.password)
    return APIResponse(message="Login successful", data=data)


@router.post(
    "/logout",
    response_model=APIResponse[None],
    summary="Sign out (marks the user offline)",
)
async def logout(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await auth_service.logout(db=db, user=current_user)
    return APIResponse(message="Logout successful")


@router.get(
    "/me",
    response_model=APIResponse[UserData],
    summary="Current user",
)
async def me(current_user: User = Depends(get_current_user)) -> APIResponse[UserData]:
    return APIResponse(
        message="User fetched successfully",
        data=UserData(user=UserOut.model_validate(current_user)),
    )
