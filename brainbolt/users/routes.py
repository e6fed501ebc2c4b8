from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brainbolt.cache import projections
from brainbolt.core.deps import get_cache
from brainbolt.db.session import get_db
from brainbolt.progression.store import create_user

router = APIRouter(prefix="/v1/users", tags=["users"])


class NewUser(BaseModel):
    user_id: Optional[str] = None


# =========================
# ONBOARDING
# =========================
@router.post("", status_code=201)
def onboard_user(
    body: Optional[NewUser] = None,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    user_id = body.user_id if body else None
    try:
        snapshot = create_user(db, user_id=user_id)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="User already exists")
    projections.put_user_state(cache, snapshot)
    return snapshot.to_dict()
