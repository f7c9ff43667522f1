"""
Unit Tests for the Upload Pipeline
"""
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from jivana.models import BloodTest
from jivana.services import records
from jivana.services.analysis_service import FALLBACK_ANALYSIS
from jivana.services.storage_service import InMemoryObjectStore
from jivana.services.upload_service import UploadService, build_file_key
from jivana.utils.exceptions import (
    ConflictError,
    FileTooLargeError,
    InvalidUploadError,
    RecordStoreError,
    StorageError,
)

MAX_BYTES = 5 * 1024 * 1024
PERFORMED = datetime(2024, 1, 15, 9, 30)


class BrokenObjectStore(InMemoryObjectStore):
    def put(self, key, data, content_type="application/pdf"):
        raise StorageError("Upload failed: bucket unreachable", key=key)


@pytest.fixture
def upload_service(object_store, analysis_service) -> UploadService:
    return UploadService(object_store, analysis_service, MAX_BYTES)


def blood_test_count(db_session) -> int:
    return db_session.query(BloodTest).count()


class TestFileKey:
    """Tests for storage key derivation."""

    def test_key_layout(self):
        key = build_file_key(7, "march-panel.pdf")
        user_part, rest = key.split("/", 1)
        assert user_part == "7"
        assert rest.endswith("-march-panel.pdf")

    def test_keys_are_unique(self):
        keys = {build_file_key(1, "report.pdf") for _ in range(200)}
        assert len(keys) == 200

    def test_directory_components_dropped(self):
        assert build_file_key(1, "../../etc/report.pdf").endswith("-report.pdf")
        assert build_file_key(1, "C:\\Users\\me\\report.pdf").endswith("-report.pdf")
        assert "/.." not in build_file_key(1, "../../etc/report.pdf")


class TestUploadPipeline:
    """Tests for UploadService.upload."""

    def test_upload_scenario(self, db_session, user, upload_service, object_store, analysis_service, pdf_bytes):
        results = {"hemoglobin": 14.5, "glucose": 95}

        test = upload_service.upload(
            db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, results
        )

        assert test.id is not None
        assert test.user_id == user.id
        assert test.results == results
        assert test.results["hemoglobin"] == 14.5
        assert test.results["glucose"] == 95
        assert test.date_performed == PERFORMED

        analysis = test.ai_analysis
        assert isinstance(analysis["summary"], str)
        assert isinstance(analysis["insights"], list)
        assert isinstance(analysis["recommendations"], list)
        assert isinstance(analysis["risk_factors"], list)

        assert test.file_key in object_store
        assert object_store.get(test.file_key) == pdf_bytes
        assert test.file_key.startswith(f"{user.id}/")
        assert analysis_service.calls == [results]

    def test_persisted_record_matches(self, db_session, user, upload_service, pdf_bytes):
        test = upload_service.upload(
            db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"ldl": 110}
        )

        stored = records.get_blood_test(db_session, test.id)
        assert stored.results == {"ldl": 110}
        assert stored.ai_analysis is not None

    def test_analysis_failure_still_succeeds(self, db_session, user, object_store, failing_analysis_service, pdf_bytes):
        failing = failing_analysis_service
        service = UploadService(object_store, failing, MAX_BYTES)

        test = service.upload(
            db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"glucose": 95}
        )

        assert failing.calls == 1
        assert test.ai_analysis["summary"] == FALLBACK_ANALYSIS.summary
        assert test.ai_analysis["summary"]
        assert test.results == {"glucose": 95}

    def test_oversized_file_rejected_before_write(self, db_session, user, upload_service, object_store, analysis_service):
        payload = b"%PDF" + b"0" * (10 * 1024 * 1024)

        with pytest.raises(FileTooLargeError) as exc_info:
            upload_service.upload(
                db_session, user.id, "big.pdf", payload, "application/pdf", PERFORMED, {"glucose": 95}
            )

        assert exc_info.value.message == "File too large (max 5MB)"
        assert len(object_store) == 0
        assert blood_test_count(db_session) == 0
        assert analysis_service.calls == []

    def test_file_at_limit_accepted(self, db_session, user, object_store, analysis_service):
        service = UploadService(object_store, analysis_service, max_upload_bytes=1024)
        test = service.upload(
            db_session, user.id, "edge.pdf", b"0" * 1024, "application/pdf", PERFORMED, {"glucose": 95}
        )
        assert test.id is not None

    def test_small_limit_reported_in_kilobytes(self, db_session, user, object_store, analysis_service):
        service = UploadService(object_store, analysis_service, max_upload_bytes=1024)

        with pytest.raises(FileTooLargeError) as exc_info:
            service.upload(
                db_session, user.id, "edge.pdf", b"0" * 1025, "application/pdf", PERFORMED, {"glucose": 95}
            )

        assert exc_info.value.message == "File too large (max 1KB)"
        assert exc_info.value.details["limit"] == 1024

    def test_empty_file_rejected(self, db_session, user, upload_service, object_store):
        with pytest.raises(InvalidUploadError):
            upload_service.upload(db_session, user.id, "empty.pdf", b"", "application/pdf", PERFORMED, {})
        assert len(object_store) == 0

    def test_non_pdf_rejected(self, db_session, user, upload_service, object_store):
        with pytest.raises(InvalidUploadError) as exc_info:
            upload_service.upload(
                db_session, user.id, "photo.png", b"\x89PNG", "image/png", PERFORMED, {"glucose": 95}
            )
        assert exc_info.value.field == "file"
        assert len(object_store) == 0

    def test_pdf_extension_with_generic_content_type(self, db_session, user, upload_service, pdf_bytes):
        test = upload_service.upload(
            db_session, user.id, "panel.PDF", pdf_bytes, "application/octet-stream", PERFORMED, {"glucose": 95}
        )
        assert test.id is not None

    def test_empty_results_accepted(self, db_session, user, upload_service, pdf_bytes):
        test = upload_service.upload(
            db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {}
        )
        assert test.results == {}
        assert test.ai_analysis is not None

    def test_storage_failure_creates_no_record(self, db_session, user, analysis_service, pdf_bytes):
        service = UploadService(BrokenObjectStore(), analysis_service, MAX_BYTES)

        with pytest.raises(StorageError):
            service.upload(
                db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"glucose": 95}
            )

        assert blood_test_count(db_session) == 0
        assert analysis_service.calls == []

    def test_record_failure_leaves_file_and_skips_analysis(
        self, db_session, user, upload_service, object_store, analysis_service, pdf_bytes, monkeypatch
    ):
        def failing_commit():
            raise OperationalError("INSERT INTO blood_tests", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(RecordStoreError) as exc_info:
            upload_service.upload(
                db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"glucose": 95}
            )

        assert exc_info.value.operation == "create_blood_test"
        assert len(object_store) == 1
        assert analysis_service.calls == []
        assert blood_test_count(db_session) == 0

    def test_attach_failure_keeps_file_and_record(
        self, db_session, user, upload_service, object_store, analysis_service, pdf_bytes, monkeypatch
    ):
        def failing_attach(db, blood_test_id, analysis):
            raise RecordStoreError("attach_analysis failed", operation="attach_analysis")

        monkeypatch.setattr(records, "attach_analysis", failing_attach)

        with pytest.raises(RecordStoreError):
            upload_service.upload(
                db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"glucose": 95}
            )

        assert len(object_store) == 1
        assert analysis_service.calls == [{"glucose": 95}]

        tests = db_session.query(BloodTest).all()
        assert len(tests) == 1
        assert tests[0].ai_analysis is None
        assert tests[0].file_key in object_store


class TestAttachAnalysis:
    """The analysis is set once."""

    def test_second_attach_rejected(self, db_session, user, upload_service, pdf_bytes):
        test = upload_service.upload(
            db_session, user.id, "panel.pdf", pdf_bytes, "application/pdf", PERFORMED, {"glucose": 95}
        )

        with pytest.raises(ConflictError):
            records.attach_analysis(db_session, test.id, FALLBACK_ANALYSIS.model_dump())

        assert records.get_blood_test(db_session, test.id).ai_analysis["summary"] != FALLBACK_ANALYSIS.summary
