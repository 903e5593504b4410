from db.models.user import User
from db.repositories.user_repository import UserRepository
import jwt
import os
import logging
from fastapi import Request


class UserServiceException(Exception):
    def __init__(self, detail):
        super().__init__(detail)
        self.detail = detail

    def __str__(self):
        return str(self.detail)


logger = logging.getLogger(__name__)


class UserService:
    """Resolves the calling user from a JWT issued by the account service."""

    ALGORITHM = "HS256"

    def __init__(self, user_repo: UserRepository, secret_key: str | None = None):
        self.user_repo = user_repo
        self.SECRET_KEY = secret_key or os.getenv("JWT_SECRET")
        if not self.SECRET_KEY:
            logger.warning("JWT_SECRET not found in environment, tokens cannot be validated")

    def get_current_user(self, token: str) -> User:
        if not self.SECRET_KEY:
            raise UserServiceException("Server configuration error")
        try:
            payload = jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.error("Token has expired")
            raise UserServiceException("Token expired")
        except jwt.PyJWTError as e:
            logger.error(f"JWT decode error: {str(e)}")
            raise UserServiceException("Not authenticated")

        user_id = payload.get("sub")
        if user_id is None:
            logger.error("No user_id in token payload")
            raise UserServiceException("Not authenticated")
        try:
            user_id = int(user_id)
        except ValueError:
            logger.error(f"Invalid user_id format in token: {user_id}")
            raise UserServiceException("Not authenticated")

        user = self.user_repo.get_user_by_id(user_id)
        if user is None or not user.is_active:
            logger.error(f"No active user found for ID {user_id}")
            raise UserServiceException("Not authenticated")
        return user

    async def get_current_user_from_request(self, request: Request) -> User:
        token = None
        auth = request.headers.get("Authorization")
        if auth and auth.lower().startswith("bearer "):
            token = auth.split(" ", 1)[1].strip()
        if not token:
            token = request.cookies.get("access_token")
        if not token:
            logger.warning(f"No access token provided for {request.url.path}")
            raise UserServiceException("Not authenticated")
        return self.get_current_user(token)
