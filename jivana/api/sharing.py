"""
Sharing API Routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jivana.api.dependencies import get_current_user, get_db, get_sharing_service
from jivana.models import User
from jivana.schemas.blood_test import ShareRequest
from jivana.services.sharing_service import SharingService


router = APIRouter()


@router.post("/test/share")
async def share_blood_test(
    data: ShareRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sharing: SharingService = Depends(get_sharing_service)
):
    """
    Share one of your tests; the returned token opens it without login
    """
    shared = sharing.share(
        db,
        blood_test_id=data.blood_test_id,
        shared_by_id=current_user.id,
        recipient_email=str(data.shared_with_email)
    )
    return {"success": True, "data": shared.to_dict()}


@router.get("/shared/{token}")
async def get_shared_test(
    token: str,
    db: Session = Depends(get_db),
    sharing: SharingService = Depends(get_sharing_service)
):
    """
    Load a shared test via token (no auth required)
    """
    test = sharing.resolve(db, token)
    return {"success": True, "data": test.to_dict()}
