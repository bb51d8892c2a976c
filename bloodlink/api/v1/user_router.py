# bloodlink/api/v1/user_router.py
from fastapi import APIRouter, Depends, status

from bloodlink.db.schemas import UserCreate, UserResponse
from bloodlink.scheduling import NotFound
from bloodlink.services.v1 import UserService
from .dependencies import get_user_service

user_router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


@user_router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user profile",
    responses={404: {"description": "User not found"}},
)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    user = await service.get_user_by_id(user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user


@user_router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a donor, blood bank or admin profile",
    responses={409: {"description": "Email already registered"}},
)
async def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)):
    return await service.create_user(payload)


__all__ = ["user_router"]
