from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic_api.booking import rules
from clinic_api.database import ensure_database_ready, get_db

router = APIRouter(tags=['services'])


class ServiceResponse(BaseModel):
    id: str
    name: str
    category: str
    description: str | None = None
    duration: int
    is_active: bool


@router.get('', response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    ensure_database_ready()

    return [
        ServiceResponse(
            id=service.service_id,
            name=service.name,
            category=service.category,
            description=service.description,
            duration=service.duration_minutes,
            is_active=bool(service.is_active),
        )
        for service in rules.list_active_services(db)
    ]
