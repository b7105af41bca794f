"""FastAPI dependencies for conferences."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from guestbook.config.settings import Settings, get_settings

from .service import ConferenceService


async def get_conference_service(request: Request) -> ConferenceService:
    """Get conference service from app state."""
    service = getattr(request.app.state, "conference_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conference service not available",
        )
    return service


# Type aliases for dependency injection
ConferenceServiceDep = Annotated[ConferenceService, Depends(get_conference_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
