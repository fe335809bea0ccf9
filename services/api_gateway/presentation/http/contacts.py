from fastapi import APIRouter, Depends, Response

from services.api_gateway.dependencies import get_contact_service
from services.api_gateway.presentation.http.identity import get_caller_id
from services.api_gateway.presentation.http.schemas import ContactRequest
from services.api_gateway.presentation.http.serializers import contact_to_dict

router = APIRouter(prefix="/v1/contacts", tags=["contacts"])


@router.get("")
def list_contacts(caller_id: str = Depends(get_caller_id)) -> list[dict[str, object]]:
    contacts = get_contact_service().list_contacts(caller_id)
    return [contact_to_dict(contact) for contact in contacts]


@router.post("")
def create_contact(
    payload: ContactRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    contact = get_contact_service().save_contact(user_id=caller_id, **payload.model_dump())
    return contact_to_dict(contact)


@router.put("/{contact_id}")
def update_contact(
    contact_id: str,
    payload: ContactRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    contact = get_contact_service().save_contact(
        user_id=caller_id,
        contact_id=contact_id,
        **payload.model_dump(),
    )
    return contact_to_dict(contact)


@router.delete("/{contact_id}")
def delete_contact(
    contact_id: str,
    caller_id: str = Depends(get_caller_id),
) -> Response:
    get_contact_service().delete_contact(user_id=caller_id, contact_id=contact_id)
    return Response(status_code=204)
