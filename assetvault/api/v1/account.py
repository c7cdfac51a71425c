from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.db.session import get_db
from assetvault.schemas.storage import AccountDeleteIn, OkOut
from assetvault.services.account import delete_account_data
from assetvault.services.auth import AuthUser, get_current_user
from assetvault.services.object_store import ObjectStore, get_object_store

router = APIRouter(prefix="/account", tags=["account"])


@router.post("/delete", response_model=OkOut)
async def delete_account(
    payload: AccountDeleteIn,
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> OkOut:
    await delete_account_data(db, store, current_user, payload.email)
    return OkOut()
