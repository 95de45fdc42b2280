from fastapi import APIRouter, Depends, Query, Response

from crm_api.api.deps import user_service
from crm_api.api.envelope import EnvelopeRoute
from crm_api.core.constants import UserRole
from crm_api.schemas.user import UserCreate, UserOut, UserPage, UserQuery, UserUpdate
from crm_api.services.user_service import UserService

router = APIRouter(prefix="/user", tags=["user"], route_class=EnvelopeRoute)

@router.post("", response_model=UserOut, status_code=201)
async def create_user(body: UserCreate, svc: UserService = Depends(user_service)):
    return await svc.create(body)

@router.get("", response_model=UserPage)
async def list_users(
    full_name: str | None = Query(None),
    username: str | None = Query(None),
    role: UserRole | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    svc: UserService = Depends(user_service),
):
    q = UserQuery(full_name=full_name, username=username, role=role, page=page, limit=limit)
    return await svc.get_all(q)

@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, svc: UserService = Depends(user_service)):
    return await svc.get_by_id(user_id)

@router.patch("/restore/{user_id}", response_model=UserOut)
async def restore_user(user_id: str, svc: UserService = Depends(user_service)):
    return await svc.restore(user_id)

@router.patch("/{user_id}", response_model=UserOut)
async def update_user(user_id: str, body: UserUpdate, svc: UserService = Depends(user_service)):
    return await svc.update(user_id, body)

@router.delete("/{user_id}", status_code=204, response_class=Response)
async def delete_user(user_id: str, svc: UserService = Depends(user_service)):
    await svc.delete(user_id)
    return Response(status_code=204)
