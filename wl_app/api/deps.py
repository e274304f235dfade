from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from wl_app.core.config import settings
from wl_app.core.rate_limit import RateLimitStore, now_ms
from wl_app.core.security import AdminAllowList, AdminAuthError, verify_admin_token
from wl_app.storage.users import UserStorage
from wl_app.storage.waitlist import WaitlistStorage

bearer = HTTPBearer(auto_error=False)


def get_waitlist_storage(request: Request) -> WaitlistStorage:
    return request.app.state.waitlist_storage


def get_user_storage(request: Request) -> UserStorage:
    return request.app.state.user_storage


def get_admin_allow_list(request: Request) -> AdminAllowList:
    return request.app.state.admin_allow_list


def get_rate_limit_store(request: Request) -> RateLimitStore:
    return request.app.state.rate_limit_store


def client_address(request: Request) -> str:
    """
    Client address as seen through `settings.trusted_proxy_hops` proxies.

    Each trusted proxy appends the peer it saw to X-Forwarded-For, so the
    client is the Nth entry from the right. Entries further left are
    supplied by the client and never trusted.
    """
    peer = request.client.host if request.client else "unknown"
    hops = settings.trusted_proxy_hops
    if hops <= 0:
        return peer
    forwarded = request.headers.get("x-forwarded-for") or ""
    chain = [a.strip() for a in forwarded.split(",") if a.strip()]
    if not chain:
        return peer
    return chain[-min(hops, len(chain))]


def user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent") or None


async def require_admin(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    allow_list: AdminAllowList = Depends(get_admin_allow_list),
) -> str:
    if not creds:
        raise AdminAuthError("Missing credentials")
    return verify_admin_token(creds.credentials, allow_list)


def rate_limit(max_requests: int, window_ms: int):
    async def _guard(request: Request, store: RateLimitStore = Depends(get_rate_limit_store)):
        key = (client_address(request), request.url.path)
        hit = store.hit(key, window_ms)
        if hit.count > max_requests:
            retry_after = hit.retry_after(now_ms())
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": "Too many requests, please try again later.",
                    "retryAfter": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )
    return _guard
