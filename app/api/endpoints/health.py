from typing import List

from fastapi import APIRouter, status

from app.schemas.my_base_model import CustomBaseModel

router = APIRouter()
group_tags: List[str] = ["Health Check"]


class HealthCheck(CustomBaseModel):
    status: str = "oke"


@router.get(
    "/health",
    tags=group_tags,
    response_model=HealthCheck,
    status_code=status.HTTP_200_OK,
)
def get_health() -> HealthCheck:
    """Liveness probe."""
    return HealthCheck(status="oke")
