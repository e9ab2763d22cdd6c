from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.engine import Engine

from app.core.config import settings
from app.db.session import get_engine, ping_database
from app.schemas.health import HealthCheck
from app.services.fone_client import FoneClient, get_fone_client

router = APIRouter()
group_tags: List[str | Enum] = ["health"]


@router.get(
    "/health",
    tags=group_tags,
    response_model=HealthCheck,
    status_code=status.HTTP_200_OK,
)
def get_health(
    fone: FoneClient = Depends(get_fone_client),
    db_engine: Optional[Engine] = Depends(get_engine),
) -> HealthCheck:
    """
    Report the backend status. Fone configuration, database configuration
    and database reachability are checked independently of each other.
    """
    fone_configured = fone.configured
    db_configured = db_engine is not None
    db_ok = ping_database(db_engine)

    message = f"{settings.PROJECT_NAME} backend is running"
    problems = []
    if not fone_configured:
        problems.append("FONE_BASE_URL / FONE_SDK_KEY are missing")
    if not db_configured:
        problems.append("DATABASE_URL is missing")
    elif not db_ok:
        problems.append("the database is unreachable")
    if problems:
        message += ", but " + " and ".join(problems)
    else:
        message += " and Fone config is set"

    return HealthCheck(
        ok=True,
        foneConfigured=fone_configured,
        dbConfigured=db_configured,
        dbOk=db_ok,
        message=message,
    )
