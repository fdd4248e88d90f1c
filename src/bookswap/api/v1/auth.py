"""Registration and login endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from bookswap.dependencies import get_user_service
from bookswap.schemas.common import ErrorResponse
from bookswap.schemas.users import LoginRequest, TokenResponse, UserCreate
from bookswap.services.user import UserService

router = APIRouter()

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    responses={400: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(data: UserCreate, users: UserServiceDep) -> TokenResponse:
    return await users.register(data)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in",
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(data: LoginRequest, users: UserServiceDep) -> TokenResponse:
    return await users.login(data.email, data.password)
