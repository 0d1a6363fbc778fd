"""
Document fulfillment: turn a validated submission into a stored document.

Steps, in order:
  1. the requester must have a profile (onboarding done)
  2. a paid checkout session, when given, resolves to an order line with
     generations left; otherwise the document is recorded unlinked
  3. the binary is written to blob storage
  4. the metadata row and the allowance decrement commit together; on failure
     the blob is removed again
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from document.generator import CONTENT_TYPES, render_document
from document.store import (
    ObjectNotFound,
    StorageError,
    delete_object,
    get_object,
    key_within,
    object_exists,
    object_key,
    put_object,
)
from forms import registry
from models import GeneratedDocument, OrderItem, PaymentStatus, Purchase, UserProfile

logger = logging.getLogger(__name__)


class FulfillmentError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProfileRequired(FulfillmentError):
    status_code = 401


class InvalidSubmission(FulfillmentError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class DocumentNotFound(FulfillmentError):
    status_code = 404


class DocumentAccessDenied(FulfillmentError):
    status_code = 403


@dataclass
class FulfillmentResult:
    document: GeneratedDocument
    data: bytes
    filename: str
    content_type: str
    order_item_id: Optional[uuid.UUID] = None


def clean_filename(name: str) -> str:
    """Lowercase, with every character outside ``[a-z0-9]`` replaced by ``_``."""
    return re.sub(r"[^a-z0-9]", "_", (name or "document").lower())


def download_filename(name: str, document_id: uuid.UUID, ext: str = "pdf") -> str:
    return f"{clean_filename(name)}_{str(document_id)[:8]}.{ext}"


def _extension(name: str) -> str:
    return name.rsplit(".", 1)[-1].lower() if "." in name else "pdf"


async def require_profile(db: AsyncSession, user_id: uuid.UUID) -> UserProfile:
    profile = await db.get(UserProfile, user_id)
    if profile is None:
        logger.info("User %s has no profile, refusing fulfillment", user_id)
        raise ProfileRequired("User profile not found")
    return profile


async def resolve_allowance(
    db: AsyncSession, user_id: uuid.UUID, session_id: Optional[str]
) -> Optional[OrderItem]:
    """Order line of the user's paid purchase for a session, with generations left."""
    if not session_id:
        return None
    result = await db.execute(
        select(OrderItem)
        .join(Purchase, OrderItem.purchase_id == Purchase.id)
        .where(
            Purchase.stripe_session_id == session_id,
            Purchase.user_id == user_id,
            Purchase.payment_status == PaymentStatus.PAID,
            OrderItem.generations_remaining > 0,
        )
        .order_by(OrderItem.created_at)
        .limit(1)
    )
    item = result.scalar_one_or_none()
    if item is None:
        logger.info("No remaining allowance for session %s (user %s), recording unlinked", session_id, user_id)
    return item


async def record_document(
    db: AsyncSession,
    *,
    document_id: uuid.UUID,
    user_id: uuid.UUID,
    title: str,
    document_type: str,
    file_path: str,
    content: Optional[dict[str, Any]],
    order_item: Optional[OrderItem],
    stored_blob: bool,
) -> GeneratedDocument:
    """Insert the metadata row and consume one generation in one transaction.

    On failure the transaction is rolled back, a blob stored for this document
    (``stored_blob``) is deleted, and the error is re-raised.
    """
    document = GeneratedDocument(
        id=document_id,
        user_id=user_id,
        purchase_id=order_item.purchase_id if order_item is not None else None,
        order_item_id=order_item.id if order_item is not None else None,
        document_type=document_type,
        title=title,
        file_path=file_path,
        content=content,
        status="completed",
    )
    try:
        if order_item is not None:
            result = await db.execute(
                update(OrderItem)
                .where(OrderItem.id == order_item.id, OrderItem.generations_remaining > 0)
                .values(
                    generations_remaining=OrderItem.generations_remaining - 1,
                    generations_used=OrderItem.generations_used + 1,
                )
            )
            if result.rowcount == 0:
                # Another request used the last generation first
                logger.info("Allowance %s exhausted concurrently, recording unlinked", order_item.id)
                document.purchase_id = None
                document.order_item_id = None
        db.add(document)
        await db.commit()
    except Exception:
        await db.rollback()
        if stored_blob:
            try:
                delete_object(file_path)
            except StorageError as e:
                logger.error("Could not remove orphaned blob %s: %s", file_path, e)
        logger.error("Failed to record document %s for user %s", document_id, user_id)
        raise
    await db.refresh(document)
    logger.info(
        "Recorded document %s (%s) for user %s, order item %s",
        document.id, document_type, user_id, document.order_item_id,
    )
    return document


async def fulfill(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    slug: str,
    form_data: dict[str, Any],
    session_id: Optional[str] = None,
    product: Optional[dict[str, Any]] = None,
    fmt: str = "pdf",
) -> FulfillmentResult:
    """Validate, render, store and record a document for a product submission."""
    fmt = fmt.lower().lstrip(".")
    await require_profile(db, user_id)

    validation = registry.validate(slug, form_data)
    if not validation.valid:
        raise InvalidSubmission("Form validation failed", validation.errors)

    entry = registry.lookup(slug)
    preview = entry.preview(validation.data, product)
    try:
        data = render_document(preview, fmt)
    except ValueError as e:
        raise InvalidSubmission(str(e))

    order_item = await resolve_allowance(db, user_id, session_id)

    document_id = uuid.uuid4()
    title = (product or {}).get("name") or preview.title.title()
    filename = download_filename(title, document_id, fmt)
    key = object_key(user_id, filename)
    try:
        put_object(key, data)
    except StorageError as e:
        raise FulfillmentError(str(e))

    document = await record_document(
        db,
        document_id=document_id,
        user_id=user_id,
        title=title,
        document_type=entry.document_type,
        file_path=key,
        content=validation.data,
        order_item=order_item,
        stored_blob=True,
    )
    return FulfillmentResult(
        document=document,
        data=data,
        filename=filename,
        content_type=CONTENT_TYPES[fmt],
        order_item_id=document.order_item_id,
    )


async def save_document(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    title: str,
    document_type: str = "document",
    data: Optional[bytes] = None,
    file_path: Optional[str] = None,
    form_data: Optional[dict[str, Any]] = None,
    session_id: Optional[str] = None,
) -> GeneratedDocument:
    """Record a document rendered elsewhere: either its bytes or an existing blob key."""
    await require_profile(db, user_id)
    if data is None and not file_path:
        raise InvalidSubmission("Missing required fields", {"file": "Provide file content or a file path"})

    ext = _extension(file_path if data is None else title)
    if ext not in CONTENT_TYPES:
        supported = ", ".join(sorted(CONTENT_TYPES))
        raise InvalidSubmission(
            "Unsupported file type", {"filename": f"File type .{ext} is not supported. Supported: {supported}"}
        )

    if data is None:
        if not key_within(file_path, object_key(user_id, "")):
            logger.warning("User %s tried to record foreign blob %s", user_id, file_path)
            raise DocumentAccessDenied("File path does not belong to the requesting user")
        if not object_exists(file_path):
            raise DocumentNotFound("Document file not found")

    order_item = await resolve_allowance(db, user_id, session_id)
    document_id = uuid.uuid4()

    if data is not None:
        base = title.rsplit(".", 1)[0] if "." in title else title
        file_path = object_key(user_id, download_filename(base, document_id, ext))
        try:
            put_object(file_path, data)
        except StorageError as e:
            raise FulfillmentError(str(e))

    return await record_document(
        db,
        document_id=document_id,
        user_id=user_id,
        title=title,
        document_type=document_type,
        file_path=file_path,
        content=form_data,
        order_item=order_item,
        stored_blob=data is not None,
    )


async def load_download(
    db: AsyncSession, document_id: uuid.UUID, user_id: uuid.UUID
) -> tuple[str, bytes, str]:
    """Return ``(filename, bytes, content_type)`` for the owner of a document.

    Ownership follows the linked purchase when there is one, else the document row.
    """
    document = await db.get(GeneratedDocument, document_id)
    if document is None:
        raise DocumentNotFound("Document not found")

    owner_id = document.user_id
    if document.purchase_id is not None:
        purchase = await db.get(Purchase, document.purchase_id)
        if purchase is not None:
            owner_id = purchase.user_id
    if owner_id != user_id:
        logger.warning("User %s denied download of document %s", user_id, document_id)
        raise DocumentAccessDenied("You do not have permission to access this document")

    try:
        data = get_object(document.file_path)
    except ObjectNotFound:
        logger.error("Blob missing for document %s at %s", document_id, document.file_path)
        raise DocumentNotFound("Document file not found")
    except StorageError as e:
        raise FulfillmentError(str(e))

    ext = _extension(document.file_path)
    filename = download_filename(document.title, document.id, ext)
    return filename, data, CONTENT_TYPES.get(ext, "application/octet-stream")
