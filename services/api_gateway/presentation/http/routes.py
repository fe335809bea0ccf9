from fastapi import APIRouter, Response

from services.api_gateway.presentation.http import (
    contacts,
    emergencies,
    missions,
    realtime,
    teams,
    users,
)
from services.api_gateway.settings import settings

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict[str, str]:
    return {"status": "ready"}


@router.get("/version")
def version() -> dict[str, str]:
    return {"version": settings.version}


@router.get("/favicon.ico")
def favicon() -> Response:
    return Response(status_code=204)


router.include_router(emergencies.router)
router.include_router(teams.router)
router.include_router(missions.router)
router.include_router(users.router)
router.include_router(contacts.router)
router.include_router(realtime.router)
