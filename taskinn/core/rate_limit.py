from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared limiter; routers decorate money-out endpoints with it
limiter = Limiter(key_func=get_remote_address)
