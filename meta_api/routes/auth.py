from datetime import timedelta
import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import authenticate_user, create_access_token
from ..constants import ACCESS_TOKEN_EXPIRE_MINUTES
from ..database import get_db
from ..exceptions import AuthenticationError
from ..schemas import Token

# Initialize logger
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange an email (sent as `username`) and password for a bearer token.
    """
    user = await authenticate_user(form_data.username, form_data.password, db)
    if user is None:
        logger.warning("Login failed for email: %s", form_data.username)
        raise AuthenticationError("Invalid email or password")

    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.email},
        expires_delta=access_token_expires,
    )
    logger.info("Access token created for user: %s", user.email)

    return Token(
        access_token=access_token,
        token_type="Bearer",
        expires_in=int(access_token_expires.total_seconds()),
    )
