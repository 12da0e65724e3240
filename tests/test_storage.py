"""Tests for blob storage backends, stored-name generation and the relational store."""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from receipt_processor.api import dependencies
from receipt_processor.core.exceptions import (
    PersistenceError,
    RegistrationError,
    StorageError,
    UnsupportedFileTypeError,
)
from receipt_processor.core.models import ReceiptStatus, TransactionRecord
from receipt_processor.pipeline.ingest import IngestPipeline
from receipt_processor.services.file_service import FileService, build_file_service, build_stored_name
from receipt_processor.services.local_file_service import LocalFileService
from receipt_processor.services.s3_file_service import S3FileService


def _insert(store, receipt_uuid: str = "11111111-1111-1111-1111-111111111111") -> int:
    return store.insert_receipt(
        receipt_uuid=receipt_uuid,
        file_name=f"{receipt_uuid}_20240115_120000.jpg",
        original_name="walmart.jpg",
        content_type="image/jpeg",
        status=ReceiptStatus.NEEDS_REVIEW,
        uploaded_at=datetime(2024, 1, 15, 12, 0, tzinfo=UTC),
    )


def test_build_stored_name() -> None:
    """Stored names combine the uuid, a timestamp and the original extension."""
    now = datetime(2024, 1, 15, 9, 5, 3, tzinfo=UTC)
    if build_stored_name("abc", "IMG_0001.JPG", now) != "abc_20240115_090503.JPG":
        msg = "Unexpected stored name"
        raise AssertionError(msg)
    if build_stored_name("abc", "", now) != "abc_20240115_090503":
        msg = "A nameless upload has no extension"
        raise AssertionError(msg)


def test_local_file_service_round_trip(tmp_path) -> None:
    """Saved bytes can be read back and the returned location points at the file."""
    service = FileService(LocalFileService(tmp_path))
    location = service.save_file("a.jpg", b"bytes")
    if location != str(tmp_path / "a.jpg") or service.get_file("a.jpg") != b"bytes":
        msg = f"Unexpected location or content: {location}"
        raise AssertionError(msg)
    if not service.file_exists("a.jpg") or service.file_exists("b.jpg"):
        msg = "file_exists should reflect what was saved"
        raise AssertionError(msg)


def test_local_file_service_errors(tmp_path) -> None:
    """Missing files and keys escaping the base directory raise StorageError."""
    backend = LocalFileService(tmp_path / "uploads")
    with pytest.raises(StorageError):
        backend.download_fileobj("missing.jpg")
    with pytest.raises(StorageError):
        backend.upload_fileobj("../escape.jpg", b"x")


def test_s3_file_service(settings) -> None:
    """S3 uploads go to the configured bucket and report an s3:// location."""
    fake_s3 = MagicMock()
    fake_s3.head_bucket.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadBucket")
    fake_s3.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"bytes"))}
    with patch("receipt_processor.services.s3_file_service.boto3.client", return_value=fake_s3):
        service = S3FileService(settings)

    if fake_s3.method_calls:
        msg = f"Construction should not contact S3, got {fake_s3.method_calls}"
        raise AssertionError(msg)
    if service.upload_fileobj("a.jpg", b"bytes") != "s3://receipts/a.jpg":
        msg = "Unexpected S3 location"
        raise AssertionError(msg)
    service.upload_fileobj("c.jpg", b"bytes")
    fake_s3.head_bucket.assert_called_once_with(Bucket="receipts")
    fake_s3.create_bucket.assert_called_once_with(Bucket="receipts")
    if service.download_fileobj("a.jpg") != b"bytes":
        msg = "Unexpected S3 content"
        raise AssertionError(msg)
    fake_s3.put_object.side_effect = ClientError({"Error": {"Code": "500"}}, "PutObject")
    with pytest.raises(StorageError):
        service.upload_fileobj("b.jpg", b"bytes")


def test_s3_unreachable_is_storage_error(settings) -> None:
    """An unreachable endpoint surfaces as StorageError on upload, never at construction."""
    fake_s3 = MagicMock()
    fake_s3.head_bucket.side_effect = EndpointConnectionError(endpoint_url="http://s3.invalid")
    with patch("receipt_processor.services.s3_file_service.boto3.client", return_value=fake_s3):
        service = S3FileService(settings)
    with pytest.raises(StorageError, match="s3.invalid"):
        service.upload_fileobj("a.jpg", b"bytes")
    fake_s3.put_object.assert_not_called()


def test_rejected_upload_never_touches_s3(store, fake_ocr, fake_agent, settings) -> None:
    """Content-type validation runs before any S3 request."""
    fake_s3 = MagicMock()
    with patch("receipt_processor.services.s3_file_service.boto3.client", return_value=fake_s3):
        file_service = FileService(S3FileService(settings))
    pipeline = IngestPipeline(store, file_service, fake_ocr, fake_agent, settings)
    with pytest.raises(UnsupportedFileTypeError):
        pipeline.ingest(b"hello", "notes.txt", "text/plain")
    if fake_s3.method_calls:
        msg = f"Expected no S3 calls, got {fake_s3.method_calls}"
        raise AssertionError(msg)


def test_file_service_provider_is_built_once(settings, monkeypatch) -> None:
    """The storage dependency is built once per process, not per request."""
    monkeypatch.setattr(dependencies, "get_settings", lambda: settings)
    dependencies.get_file_service.cache_clear()
    try:
        first = dependencies.get_file_service()
        if dependencies.get_file_service() is not first:
            msg = "Expected the same FileService on every call"
            raise AssertionError(msg)
    finally:
        dependencies.get_file_service.cache_clear()


def test_build_file_service(settings) -> None:
    """The configured backend is selected; unknown backends are rejected."""
    if not isinstance(build_file_service(settings).backend, LocalFileService):
        msg = "Expected the local backend by default"
        raise AssertionError(msg)
    settings.storage_backend = "ftp"
    with pytest.raises(ValueError, match="ftp"):
        build_file_service(settings)


def test_store_receipt_lifecycle(store) -> None:
    """A receipt starts needs_review and record_transaction moves it to processed."""
    receipt_id = _insert(store)
    if store.get_receipt(receipt_id)["status"] != ReceiptStatus.NEEDS_REVIEW.value:
        msg = "New receipts start as needs_review"
        raise AssertionError(msg)
    txn_id = store.record_transaction(receipt_id, TransactionRecord(amount=10.5, currency="EUR"))
    txn = store.get_transaction(receipt_id)
    if txn["id"] != txn_id or txn["amount"] != pytest.approx(10.5) or txn["merchant_raw"] is not None:
        msg = f"Unexpected transaction: {txn}"
        raise AssertionError(msg)
    if store.get_receipt(receipt_id)["status"] != ReceiptStatus.PROCESSED.value:
        msg = "Recording a transaction marks the receipt processed"
        raise AssertionError(msg)


def test_store_one_transaction_per_receipt(store) -> None:
    """A second transaction for the same receipt is rejected."""
    receipt_id = _insert(store)
    store.record_transaction(receipt_id, TransactionRecord(amount=1))
    with pytest.raises(PersistenceError):
        store.insert_transaction(receipt_id, TransactionRecord(amount=2))


def test_store_record_transaction_unknown_receipt(store) -> None:
    """Recording against a missing receipt writes nothing."""
    with pytest.raises(PersistenceError):
        store.record_transaction(404, TransactionRecord(amount=1))
    if store.get_transaction(404) is not None:
        msg = "The transaction insert must be rolled back"
        raise AssertionError(msg)


def test_store_duplicate_uuid(store) -> None:
    """Receipt uuids are unique."""
    _insert(store)
    with pytest.raises(RegistrationError):
        _insert(store)


def test_store_update_status(store) -> None:
    """Status updates are applied and listed by state."""
    receipt_id = _insert(store)
    store.update_receipt_status(receipt_id, ReceiptStatus.ERROR)
    errored = store.list_receipts(ReceiptStatus.ERROR)
    if [r["id"] for r in errored] != [receipt_id] or store.list_receipts(ReceiptStatus.PROCESSED):
        msg = f"Unexpected listing: {errored}"
        raise AssertionError(msg)
