"""Tests for fulfillment.pipeline: allowance consumption, storage and rollback."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from document.store import get_object, put_object
from fulfillment import pipeline
from fulfillment.pipeline import (
    DocumentAccessDenied,
    DocumentNotFound,
    InvalidSubmission,
    ProfileRequired,
    clean_filename,
    download_filename,
)
from models import GeneratedDocument, PaymentStatus

PRODUCT = {"name": "NNN Agreement"}


async def _fulfill(db, user_id, form, session_id="cs_test_123", **kwargs):
    return await pipeline.fulfill(
        db,
        user_id=user_id,
        slug="nnn-agreement-cn",
        form_data=form,
        session_id=session_id,
        product=PRODUCT,
        **kwargs,
    )


class TestFilenames:
    def test_clean_filename(self):
        assert clean_filename("China NNN Agreement (v2)") == "china_nnn_agreement__v2_"

    def test_download_filename(self):
        doc_id = uuid.UUID("abcdef12-0000-0000-0000-000000000000")
        assert download_filename("NNN Agreement", doc_id, "docx") == "nnn_agreement_abcdef12.docx"


class TestFulfill:
    async def test_consumes_one_generation(self, db_session, onboarded_user, make_purchase, nnn_form):
        _, item = await make_purchase(onboarded_user["id"])
        result = await _fulfill(db_session, onboarded_user["id"], nnn_form)

        assert result.order_item_id == item.id
        assert result.document.purchase_id == item.purchase_id
        assert result.document.document_type == "nnn_agreement"
        assert result.content_type == "application/pdf"
        assert result.data.startswith(b"%PDF")
        assert result.filename == f"nnn_agreement_{str(result.document.id)[:8]}.pdf"
        assert get_object(result.document.file_path) == result.data

        await db_session.refresh(item)
        assert (item.generations_remaining, item.generations_used) == (0, 1)
        assert await db_session.scalar(select(func.count()).select_from(GeneratedDocument)) == 1

    async def test_exhausted_allowance_records_unlinked(self, db_session, onboarded_user, make_purchase, nnn_form):
        _, item = await make_purchase(onboarded_user["id"])
        await _fulfill(db_session, onboarded_user["id"], nnn_form)
        second = await _fulfill(db_session, onboarded_user["id"], nnn_form)

        assert second.order_item_id is None
        assert second.document.purchase_id is None
        await db_session.refresh(item)
        assert item.generations_remaining == 0

    async def test_unpaid_purchase_does_not_count(self, db_session, onboarded_user, make_purchase, nnn_form):
        _, item = await make_purchase(onboarded_user["id"], status=PaymentStatus.PENDING)
        result = await _fulfill(db_session, onboarded_user["id"], nnn_form)
        assert result.order_item_id is None
        await db_session.refresh(item)
        assert item.generations_remaining == 1

    async def test_other_users_session_is_not_used(
        self, db_session, onboarded_user, other_user, make_purchase, nnn_form
    ):
        _, item = await make_purchase(other_user["id"])
        result = await _fulfill(db_session, onboarded_user["id"], nnn_form)
        assert result.order_item_id is None
        await db_session.refresh(item)
        assert item.generations_remaining == 1

    async def test_without_session_is_unlinked(self, db_session, onboarded_user, nnn_form):
        result = await _fulfill(db_session, onboarded_user["id"], nnn_form, session_id=None)
        assert result.document.order_item_id is None
        assert result.document.user_id == onboarded_user["id"]

    async def test_docx_format(self, db_session, onboarded_user, nnn_form):
        result = await _fulfill(db_session, onboarded_user["id"], nnn_form, session_id=None, fmt="docx")
        assert result.filename.endswith(".docx")
        assert result.data.startswith(b"PK")

    async def test_requires_profile(self, db_session, registered_user, nnn_form):
        with pytest.raises(ProfileRequired) as exc_info:
            await _fulfill(db_session, registered_user["id"], nnn_form)
        assert exc_info.value.status_code == 401

    async def test_invalid_form(self, db_session, onboarded_user, nnn_form, storage_root):
        nnn_form["receivingPartyUSCC"] = "bad"
        with pytest.raises(InvalidSubmission) as exc_info:
            await _fulfill(db_session, onboarded_user["id"], nnn_form)
        assert exc_info.value.status_code == 400
        assert "receiving_party_uscc" in exc_info.value.errors
        assert not list(storage_root.rglob("*.pdf"))

    async def test_commit_failure_keeps_allowance_and_removes_blob(
        self, db_session, onboarded_user, make_purchase, nnn_form, storage_root
    ):
        _, item = await make_purchase(onboarded_user["id"])
        with patch.object(db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("disk full"))):
            with pytest.raises(SQLAlchemyError):
                await _fulfill(db_session, onboarded_user["id"], nnn_form)

        await db_session.refresh(item)
        assert (item.generations_remaining, item.generations_used) == (1, 0)
        assert await db_session.scalar(select(func.count()).select_from(GeneratedDocument)) == 0
        assert not list(storage_root.rglob("*.pdf"))


class TestSaveDocument:
    async def test_saves_bytes(self, db_session, onboarded_user, make_purchase):
        _, item = await make_purchase(onboarded_user["id"])
        doc = await pipeline.save_document(
            db_session,
            user_id=onboarded_user["id"],
            title="My NDA.pdf",
            data=b"%PDF-1.4 rendered elsewhere",
            session_id="cs_test_123",
        )
        assert doc.order_item_id == item.id
        assert doc.file_path == f"documents/{onboarded_user['id']}/my_nda_{str(doc.id)[:8]}.pdf"
        assert get_object(doc.file_path) == b"%PDF-1.4 rendered elsewhere"

    async def test_existing_path_of_own_blob(self, db_session, onboarded_user):
        key = put_object(f"documents/{onboarded_user['id']}/uploaded.pdf", b"%PDF")
        doc = await pipeline.save_document(
            db_session, user_id=onboarded_user["id"], title="Uploaded", file_path=key
        )
        assert doc.file_path == key

    async def test_foreign_path_denied(self, db_session, onboarded_user, other_user):
        with pytest.raises(DocumentAccessDenied):
            await pipeline.save_document(
                db_session,
                user_id=onboarded_user["id"],
                title="Stolen",
                file_path=f"documents/{other_user['id']}/secret.pdf",
            )

    async def test_needs_content_or_path(self, db_session, onboarded_user):
        with pytest.raises(InvalidSubmission):
            await pipeline.save_document(db_session, user_id=onboarded_user["id"], title="Empty")

    async def test_dot_segments_cannot_reach_another_users_blob(self, db_session, onboarded_user, other_user):
        put_object(f"documents/{other_user['id']}/secret.pdf", b"%PDF private")
        with pytest.raises(DocumentAccessDenied):
            await pipeline.save_document(
                db_session,
                user_id=onboarded_user["id"],
                title="Mine",
                file_path=f"documents/{onboarded_user['id']}/../{other_user['id']}/secret.pdf",
            )
        assert await db_session.scalar(select(func.count()).select_from(GeneratedDocument)) == 0

    async def test_missing_blob_keeps_allowance(self, db_session, onboarded_user, make_purchase):
        _, item = await make_purchase(onboarded_user["id"])
        with pytest.raises(DocumentNotFound):
            await pipeline.save_document(
                db_session,
                user_id=onboarded_user["id"],
                title="Ghost",
                file_path=f"documents/{onboarded_user['id']}/never-uploaded.pdf",
                session_id="cs_test_123",
            )
        await db_session.refresh(item)
        assert (item.generations_remaining, item.generations_used) == (1, 0)
        assert await db_session.scalar(select(func.count()).select_from(GeneratedDocument)) == 0

    @pytest.mark.parametrize("title", ["payload.exe", "page.html"])
    async def test_unsupported_extension_rejected(self, db_session, onboarded_user, storage_root, title):
        with pytest.raises(InvalidSubmission) as exc_info:
            await pipeline.save_document(
                db_session, user_id=onboarded_user["id"], title=title, data=b"MZ\x90\x00"
            )
        assert "filename" in exc_info.value.errors
        assert not [p for p in storage_root.rglob("*") if p.is_file()]
