from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.core.auth import get_current_user, create_access_token, set_auth_cookie, clear_auth_cookie
from splitbill.core.database import get_db
from splitbill.models.user import User
from splitbill.schemas.user import SignUpRequest, SignInRequest, UserResponse
from splitbill.services.user_service import create_user, authenticate_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=UserResponse, status_code=201)
async def signup(
    body: SignUpRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_user(db, body.email, body.password, body.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/signin", response_model=UserResponse)
async def signin(
    body: SignInRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Verify credentials and set the HttpOnly session cookie."""
    user = await authenticate_user(db, body.email, body.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    set_auth_cookie(response, create_access_token(user))
    return user


@router.post("/signout")
async def signout(response: Response):
    clear_auth_cookie(response)
    return {"status": "ok"}


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
