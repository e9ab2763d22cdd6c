from app.schemas.my_base_model import CustomBaseModel


class HealthCheck(CustomBaseModel):
    """Response model for /api/health, each flag is computed independently"""

    ok: bool = True
    foneConfigured: bool = False
    dbConfigured: bool = False
    dbOk: bool = False
    message: str = ""
