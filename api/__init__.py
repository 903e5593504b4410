from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address
import os

# Initialize rate limiter before the routers that decorate with it
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
)

from .monitors import router as monitors_router  # noqa: E402
from .admin import router as admin_router  # noqa: E402

router = APIRouter()
router.include_router(monitors_router)
router.include_router(admin_router)
