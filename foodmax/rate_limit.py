from slowapi import Limiter

from foodmax.config import settings
from foodmax.security import get_client_ip


def rate_limit_key(request):
    """Use o usuário identificado quando houver, senão o IP do cliente."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)
