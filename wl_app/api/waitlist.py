# wl_app/api/waitlist.py
from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Iterable, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from wl_app.api.deps import (
    client_address,
    get_waitlist_storage,
    rate_limit,
    require_admin,
    user_agent,
)
from wl_app.core.config import settings
from wl_app.db.models import WaitlistSignup
from wl_app.schemas.waitlist import (
    BulkUpdateIn,
    BulkUpdateOut,
    EmailVerificationIn,
    SignupCreatedOut,
    SignupMessageOut,
    SignupOut,
    SignupSummary,
    SignupUpdatedOut,
    WaitlistListOut,
    WaitlistSignupIn,
    WaitlistSignupUpdate,
)
from wl_app.storage.waitlist import WaitlistStorage

router = APIRouter(prefix="/api/waitlist", tags=["waitlist"])

admin_guard = [
    Depends(rate_limit(settings.admin_api_rate_max, settings.admin_api_rate_window_ms)),
    Depends(require_admin),
]

EXPORT_HEADER = [
    "ID",
    "Full Name",
    "Email",
    "Status",
    "Verified",
    "Priority",
    "Signup Date",
    "Referral Source",
    "Interests",
    "Notes",
]


def signups_to_csv(rows: Iterable[WaitlistSignup]) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPORT_HEADER)
    for r in rows:
        ts = r.timestamp.replace(tzinfo=timezone.utc).isoformat() if r.timestamp else ""
        w.writerow([
            r.id,
            r.full_name,
            r.email,
            r.status,
            "Yes" if r.email_verified else "No",
            r.priority or 0,
            ts,
            r.referral_source or "",
            "; ".join(r.interests or []),
            r.notes or "",
        ])
    return buf.getvalue()


# ---------- public ----------

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SignupCreatedOut,
    dependencies=[Depends(rate_limit(settings.signup_rate_max, settings.signup_rate_window_ms))],
)
async def join_waitlist(
    payload: WaitlistSignupIn,
    request: Request,
    storage: WaitlistStorage = Depends(get_waitlist_storage),
):
    signup = await storage.create_signup(
        payload,
        ip_address=client_address(request),
        user_agent=user_agent(request),
    )
    return SignupCreatedOut(
        message="Successfully joined the waitlist!",
        signup=SignupSummary.from_row(signup),
    )


@router.post(
    "/verify",
    response_model=SignupMessageOut,
    dependencies=[Depends(rate_limit(settings.verify_rate_max, settings.verify_rate_window_ms))],
)
async def verify_email(
    payload: EmailVerificationIn,
    storage: WaitlistStorage = Depends(get_waitlist_storage),
):
    signup = await storage.verify_email(payload.token)
    return SignupMessageOut(
        message="Email verified successfully",
        signup=SignupSummary.from_row(signup),
    )


# ---------- admin ----------

@router.get("", response_model=WaitlistListOut, dependencies=admin_guard)
async def list_waitlist(
    status_filter: Optional[Literal["pending", "verified", "invited", "declined", "all"]] = Query(
        None, alias="status"
    ),
    storage: WaitlistStorage = Depends(get_waitlist_storage),
):
    wanted = None if status_filter in (None, "all") else status_filter
    rows = await storage.list_signups(wanted)
    stats = await storage.compute_stats()
    return WaitlistListOut(signups=[SignupOut.from_row(r) for r in rows], stats=stats)


@router.get("/export", dependencies=admin_guard)
async def export_waitlist(storage: WaitlistStorage = Depends(get_waitlist_storage)):
    rows = await storage.export_all()
    filename = f"waitlist-export-{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.csv"
    return Response(
        content=signups_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/bulk-update", response_model=BulkUpdateOut, dependencies=admin_guard)
async def bulk_update_waitlist(
    payload: BulkUpdateIn,
    storage: WaitlistStorage = Depends(get_waitlist_storage),
):
    result = await storage.bulk_update(payload.signupIds, payload.updates)
    return BulkUpdateOut(
        message=f"Updated {len(result.updated_ids)} signups",
        updated=len(result.updated_ids),
        missing=result.missing_ids,
    )


@router.patch("/{signup_id}", response_model=SignupUpdatedOut, dependencies=admin_guard)
async def update_waitlist_signup(
    payload: WaitlistSignupUpdate,
    signup_id: int = Path(..., gt=0),
    storage: WaitlistStorage = Depends(get_waitlist_storage),
):
    signup = await storage.update_signup(signup_id, payload)
    return SignupUpdatedOut(message="Signup updated successfully", signup=SignupOut.from_row(signup))
