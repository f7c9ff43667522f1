"""
Shared FastAPI dependencies
"""
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from jivana.config import settings
from jivana.database import get_db
from jivana.models import User
from jivana.services import records
from jivana.services.analysis_service import AnalysisService
from jivana.services.identity_service import IdentityProvider
from jivana.services.sharing_service import SharingService
from jivana.services.storage_service import ObjectStore
from jivana.services.upload_service import UploadService
from jivana.utils.exceptions import AuthenticationError
from jivana.utils.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_upload_service(
    object_store: ObjectStore = Depends(get_object_store),
    analysis_service: AnalysisService = Depends(get_analysis_service)
) -> UploadService:
    return UploadService(object_store, analysis_service, settings.MAX_UPLOAD_BYTES)


def get_sharing_service() -> SharingService:
    return SharingService()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer token to a user"""
    if credentials is None:
        raise AuthenticationError("Missing token")

    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise AuthenticationError("Invalid token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    user = records.get_user(db, user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user
