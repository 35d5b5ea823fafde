# app/routers/software.py
from fastapi import APIRouter, Depends

from app.core.auth import require_admin
from app.core.config import get_settings
from app.repositories.software_repo import SoftwareRepository
from app.schemas.software import SoftwareData, SoftwareWriteResult

settings = get_settings()

router = APIRouter(prefix="/software", tags=["Legacy software data"])

repo = SoftwareRepository(settings.LEGACY_DATA_PATH, writable=settings.LEGACY_DATA_WRITABLE)


@router.get("", response_model=SoftwareData, response_model_by_alias=True)
def read_software():
    """
    The legacy JSON catalog file, as stored.
    """
    return repo.load()


@router.put(
    "",
    response_model=SoftwareWriteResult,
    dependencies=[Depends(require_admin)],
)
def write_software(payload: SoftwareData):
    """
    Replace the legacy JSON catalog file (admin only).

    Read-only deployments answer success=false and keep the file as is.
    """
    if repo.save(payload):
        return SoftwareWriteResult(success=True, message="Software data saved")
    return SoftwareWriteResult(
        success=False,
        message="Read-only deployment: software data was not persisted",
    )
