"""
Upload Service - store a report, record its results and attach an analysis
"""
import logging
import os
import secrets
from datetime import datetime
from typing import Dict, Optional, Union

from sqlalchemy.orm import Session

from jivana.models import BloodTest
from jivana.services import records
from jivana.services.analysis_service import AnalysisService
from jivana.services.storage_service import ObjectStore
from jivana.utils.exceptions import FileTooLargeError, InvalidUploadError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

Results = Dict[str, Union[int, float]]


def build_file_key(user_id: int, filename: str) -> str:
    """
    Storage key unique per upload: ``{user_id}/{random}-{filename}``

    The random part carries 128 bits so keys never collide.
    """
    safe_name = os.path.basename(filename.replace("\\", "/")) or "report.pdf"
    return f"{user_id}/{secrets.token_urlsafe(16)}-{safe_name}"


class UploadService:
    """
    Upload pipeline

    1. Validate the file before anything is written
    2. Store the file in the object store
    3. Create the blood test record
    4. Analyze the results (never fails, see AnalysisService)
    5. Attach the analysis to the record

    Each step runs once, in order. A failure after step 2 leaves what was
    already written in place.
    """

    def __init__(self, object_store: ObjectStore, analysis_service: AnalysisService, max_upload_bytes: int):
        self.object_store = object_store
        self.analysis_service = analysis_service
        self.max_upload_bytes = max_upload_bytes

    def validate_file(self, filename: Optional[str], payload: Optional[bytes], content_type: Optional[str]) -> None:
        """Reject missing, empty, oversized or non-PDF files"""
        if not filename or payload is None or len(payload) == 0:
            raise InvalidUploadError("No file uploaded", field="file")

        if len(payload) > self.max_upload_bytes:
            raise FileTooLargeError(size=len(payload), limit=self.max_upload_bytes)

        if content_type != PDF_CONTENT_TYPE and not filename.lower().endswith(".pdf"):
            raise InvalidUploadError(
                "Only PDF files are accepted",
                field="file",
                details={"content_type": content_type}
            )

    def upload(
        self,
        db: Session,
        user_id: int,
        filename: str,
        payload: bytes,
        content_type: Optional[str],
        date_performed: datetime,
        results: Results
    ) -> BloodTest:
        """
        Run the upload pipeline

        Args:
            db: Database session
            user_id: Owner of the test
            filename: Client-side file name
            payload: File bytes
            content_type: Client-declared content type
            date_performed: When the blood was drawn
            results: Metric name -> numeric value

        Returns:
            Blood test with analysis attached
        """
        self.validate_file(filename, payload, content_type)

        file_key = build_file_key(user_id, filename)
        self.object_store.put(file_key, payload, PDF_CONTENT_TYPE)
        logger.info(f"Stored report {file_key} ({len(payload)} bytes)")

        test = records.create_blood_test(
            db,
            user_id=user_id,
            date_performed=date_performed,
            file_key=file_key,
            results=results
        )

        analysis = self.analysis_service.analyze(results)

        test = records.attach_analysis(db, test.id, analysis.model_dump())
        logger.info(f"Blood test {test.id} uploaded for user {user_id} with {len(results)} results")
        return test
