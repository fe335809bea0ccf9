from fastapi import APIRouter, Depends, HTTPException

from libs.core.domain.entities import Role
from services.api_gateway.dependencies import get_access_service
from services.api_gateway.presentation.http.identity import get_caller_id
from services.api_gateway.presentation.http.schemas import (
    UserRegisterRequest,
    UserRoleRequest,
)
from services.api_gateway.presentation.http.serializers import user_to_dict

router = APIRouter(prefix="/v1/users", tags=["users"])


@router.post("")
def register_user(
    payload: UserRegisterRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    user = get_access_service().register_user(
        user_id=caller_id,
        full_name=payload.full_name,
        phone=payload.phone,
        role=payload.role,
    )
    return user_to_dict(user)


@router.get("")
def list_users(
    role: Role | None = None,
    caller_id: str = Depends(get_caller_id),
) -> list[dict[str, object]]:
    access = get_access_service()
    if not access.has_role(caller_id, Role.ADMIN):
        raise HTTPException(status_code=403, detail="Admin role required")
    return [user_to_dict(user) for user in access.list_users(role=role)]


@router.get("/me")
def get_own_profile(caller_id: str = Depends(get_caller_id)) -> dict[str, object]:
    user = get_access_service().get_user(caller_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user_to_dict(user)


@router.get("/{user_id}/roles/{role}")
def has_role(user_id: str, role: Role) -> dict[str, object]:
    return {
        "user_id": user_id,
        "role": role.value,
        "has_role": get_access_service().has_role(user_id, role),
    }


@router.get("/{user_id}/roles/{role}/verify")
def verify_role(user_id: str, role: Role) -> dict[str, object]:
    return {
        "user_id": user_id,
        "role": role.value,
        "has_role": get_access_service().verify_role(user_id, role),
    }


@router.post("/{user_id}/roles/{role}")
def grant_role(
    user_id: str,
    role: Role,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    user = get_access_service().grant_role(actor_id=caller_id, user_id=user_id, role=role)
    return user_to_dict(user)


@router.delete("/{user_id}/roles/{role}")
def revoke_role(
    user_id: str,
    role: Role,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    user = get_access_service().revoke_role(actor_id=caller_id, user_id=user_id, role=role)
    return user_to_dict(user)


@router.put("/{user_id}/role")
def set_role(
    user_id: str,
    payload: UserRoleRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    user = get_access_service().set_role(
        actor_id=caller_id,
        user_id=user_id,
        role=payload.role,
    )
    return user_to_dict(user)
