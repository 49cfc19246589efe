from fastapi import APIRouter, Request

from backend.models.schemas import MeResponse
from backend.services.identity import has_role

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def me(request: Request):
    return MeResponse(is_admin=has_role(request.headers, "admin"))
