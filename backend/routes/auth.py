"""
Guardian Realtime - Auth
Session resolution for the protected /api routes.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import db, now_iso

security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    token: Optional[str] = Query(None, description="EventSource cannot send headers"),
):
    """Resolve the logged-in user from the session token (Bearer or ?token=)."""
    session_token = credentials.credentials if credentials else token
    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session = await db.sessions.find_one({
        "token": session_token,
        "expires_at": {"$gt": now_iso()}
    })

    if not session:
        raise HTTPException(status_code=401, detail="Session expired")

    user = await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.get("is_active", user.get("active", True)):
        raise HTTPException(status_code=403, detail="Account disabled")

    return user
