from typing import Annotated

from fastapi import Depends, HTTPException, Request

from config import TRUSTED_EMAIL_HEADER, TRUSTED_USER_HEADER
from context import AppContext
from models.user import User


def get_context(request: Request) -> AppContext:
    return request.app.state.context


ContextDep = Annotated[AppContext, Depends(get_context)]


def get_user_id(request: Request) -> str | None:
    """
    Opaque id of the user asserted by the authenticating proxy, if any.
    """
    if not TRUSTED_USER_HEADER:
        return None

    user_id = request.headers.get(TRUSTED_USER_HEADER, '').strip()
    return user_id or None


UserIdDep = Annotated[str | None, Depends(get_user_id)]


async def require_user(request: Request, context: ContextDep, user_id: UserIdDep) -> User:
    if user_id is None:
        raise HTTPException(401, 'Unauthorized')

    email = request.headers.get(TRUSTED_EMAIL_HEADER, '').strip() if TRUSTED_EMAIL_HEADER else ''
    return await context.users.upsert(user_id, email or None)


UserDep = Annotated[User, Depends(require_user)]
