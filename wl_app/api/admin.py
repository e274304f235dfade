from fastapi import APIRouter, Depends

from wl_app.api.deps import get_admin_allow_list, get_user_storage, rate_limit
from wl_app.core.config import settings
from wl_app.core.security import AdminAllowList, authenticate_admin, verify_admin_token
from wl_app.schemas.auth import AdminAuthIn, AdminAuthOut, AdminUserOut, AdminVerifyIn, AdminVerifyOut
from wl_app.storage.users import UserStorage

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post(
    "/auth",
    response_model=AdminAuthOut,
    dependencies=[Depends(rate_limit(settings.admin_auth_rate_max, settings.admin_auth_rate_window_ms))],
)
async def admin_auth(
    payload: AdminAuthIn,
    allow_list: AdminAllowList = Depends(get_admin_allow_list),
    users: UserStorage = Depends(get_user_storage),
):
    token = await authenticate_admin(payload.email, payload.password, allow_list, users)
    return AdminAuthOut(token=token)


@router.post(
    "/verify",
    response_model=AdminVerifyOut,
    dependencies=[Depends(rate_limit(settings.admin_verify_rate_max, settings.admin_verify_rate_window_ms))],
)
async def admin_verify(
    payload: AdminVerifyIn,
    allow_list: AdminAllowList = Depends(get_admin_allow_list),
):
    email = verify_admin_token(payload.token, allow_list)
    return AdminVerifyOut(user=AdminUserOut(email=email))
