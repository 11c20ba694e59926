from fastapi import APIRouter, Depends
from ..deps import get_service
from ..service import PracticeTestService

router = APIRouter(prefix="/api", tags=["health"])

@router.get("/health")
def health(service: PracticeTestService = Depends(get_service)):
	return service.health()
