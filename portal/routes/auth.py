from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_client_ip, get_current_active_user, get_db
from portal.core.logging import logger
from portal.core.rate_limiter import login_rate_limit
from portal.models import User
from portal.schemas import MessageResponse
from portal.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PasswordChange,
    RegisterRequest,
    RegisterResponse
)
from portal.schemas.user import UserResponse
from portal.services import AuthService

router = APIRouter(tags=["Authentication"])


# Service dependencies
def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db=db)


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(login_rate_limit)])
async def login(
    request: Request,
    credentials: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate with email and password and receive a bearer token"""
    client_ip = get_client_ip(request)
    logger.info(f"Login attempt for {credentials.email}", extra={'ip_address': client_ip})
    return await auth_service.login(credentials.email, credentials.password, client_ip)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Self-register as a Student or Parent; an Admin must approve the account"""
    user = await auth_service.register(data)
    return RegisterResponse(user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    await auth_service.change_password(current_user, data)
    return MessageResponse(message="Password updated successfully")
