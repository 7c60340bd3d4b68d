from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from config import LOGIN_URL, LOGOUT_URL
from dependencies import UserDep
from models.user import User

router = APIRouter()


@router.get('/auth/user')
async def get_user(user: UserDep) -> User:
    return user


@router.get('/login')
async def login():
    return RedirectResponse(LOGIN_URL)


@router.get('/logout')
async def logout():
    return RedirectResponse(LOGOUT_URL)
