"""FastAPI dependencies shared by the routers: controller handle and operator token."""
import logging

from fastapi import Header, Request, status

from broker_controller.core.exceptions import ProblemDetailException
from broker_controller.core.security import decode_jwt
from broker_controller.services.controller import BrokerController

logger = logging.getLogger(__name__)


async def require_jwt(
    authorization: str | None = Header(default=None, alias="Authorization")
) -> dict:
    """Decoded claims of the Bearer operator token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise ProblemDetailException(status.HTTP_401_UNAUTHORIZED, "Unauthorized", detail="Missing token")
    claims = decode_jwt(token.strip())
    logger.info("admin request by %s", claims.get("sub"))
    return claims


def get_controller(request: Request) -> BrokerController:
    return request.app.state.controller
