from fastapi import APIRouter

from assetvault.api.v1.account import router as account_router
from assetvault.api.v1.storage import router as storage_router
from assetvault.api.v1.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(uploads_router)
api_router.include_router(storage_router)
api_router.include_router(account_router)
