from fastapi import APIRouter, Depends

from crm_api.api.deps import user_service
from crm_api.api.envelope import EnvelopeRoute
from crm_api.schemas.auth import LoginIn, LoginOut
from crm_api.services.user_service import UserService

router = APIRouter(prefix="/user", tags=["auth"], route_class=EnvelopeRoute)

@router.post("/log-in", response_model=LoginOut)
async def log_in(body: LoginIn, svc: UserService = Depends(user_service)):
    return await svc.log_in(body.username, body.password)
