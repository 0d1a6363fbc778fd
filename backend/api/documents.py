"""Generated document endpoints.

POST /api/generate-pdf                - Validate, render, store and record a document
POST /api/save-document               - Record a document rendered elsewhere
GET  /api/documents                   - The user's documents, newest first
GET  /api/documents/{id}              - Document metadata and form snapshot
GET  /api/documents/{id}/download     - The stored binary (owner only)
"""

import base64
import binascii
import uuid
import logging
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import get_current_user_id
from fulfillment import pipeline
from fulfillment.pipeline import FulfillmentError, InvalidSubmission
from models import GeneratedDocument, UserProfile, get_db
from notifications import mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateRequest(CamelModel):
    slug: str = Field(min_length=1)
    form_data: dict[str, Any]
    session_id: Optional[str] = None
    product_name: Optional[str] = None
    format: Literal["pdf", "docx"] = "pdf"
    send_email: bool = True


class GenerateResponse(CamelModel):
    document_id: uuid.UUID
    filename: str
    download_url: str
    file: str  # base64
    order_item_id: Optional[uuid.UUID] = None
    emailed: bool = False


class SaveRequest(CamelModel):
    filename: str = Field(min_length=1)
    document_type: str = "document"
    file_base64: Optional[str] = None
    file_path: Optional[str] = None
    form_data: Optional[dict[str, Any]] = None
    session_id: Optional[str] = None


class DocumentOut(BaseModel):
    id: uuid.UUID
    title: str
    document_type: str
    status: str
    purchase_id: Optional[uuid.UUID]
    created_at: datetime
    download_url: str


class DocumentDetail(DocumentOut):
    content: Optional[dict[str, Any]] = None


class DocumentList(BaseModel):
    documents: list[DocumentOut]
    total: int


def _fulfillment_failure(e: FulfillmentError) -> HTTPException:
    if isinstance(e, InvalidSubmission) and e.errors:
        return HTTPException(status_code=e.status_code, detail={"message": e.message, "errors": e.errors})
    return HTTPException(status_code=e.status_code, detail=e.message)


def _download_url(document_id: uuid.UUID) -> str:
    return f"/api/documents/{document_id}/download"


def _to_out(doc: GeneratedDocument) -> DocumentOut:
    return DocumentOut(
        id=doc.id,
        title=doc.title,
        document_type=doc.document_type,
        status=doc.status,
        purchase_id=doc.purchase_id,
        created_at=doc.created_at,
        download_url=_download_url(doc.id),
    )


@router.post("/generate-pdf", response_model=GenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_pdf(
    body: GenerateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Render a product submission, consuming one generation of a paid session if given."""
    product = {"name": body.product_name} if body.product_name else None
    try:
        result = await pipeline.fulfill(
            db,
            user_id=user_id,
            slug=body.slug,
            form_data=body.form_data,
            session_id=body.session_id,
            product=product,
            fmt=body.format,
        )
    except FulfillmentError as e:
        raise _fulfillment_failure(e)

    emailed = False
    if body.send_email:
        profile = await db.get(UserProfile, user_id)
        if profile is not None and profile.email:
            emailed = await mailer.send_document(
                profile.email,
                result.document.document_type,
                result.filename,
                result.data,
                result.content_type,
            )

    return GenerateResponse(
        document_id=result.document.id,
        filename=result.filename,
        download_url=_download_url(result.document.id),
        file=base64.b64encode(result.data).decode("ascii"),
        order_item_id=result.order_item_id,
        emailed=emailed,
    )


@router.post("/save-document", status_code=status.HTTP_201_CREATED)
async def save_document(
    body: SaveRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    data = None
    if body.file_base64:
        try:
            data = base64.b64decode(body.file_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="fileBase64 is not valid base64")

    try:
        document = await pipeline.save_document(
            db,
            user_id=user_id,
            title=body.filename,
            document_type=body.document_type,
            data=data,
            file_path=body.file_path,
            form_data=body.form_data,
            session_id=body.session_id,
        )
    except FulfillmentError as e:
        raise _fulfillment_failure(e)
    return {"success": True, "documentId": str(document.id), "message": "Document record saved successfully"}


@router.get("/documents", response_model=DocumentList)
async def list_documents(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Return the user's documents, newest first."""
    total = await db.scalar(
        select(func.count()).select_from(GeneratedDocument).where(GeneratedDocument.user_id == user_id)
    )
    result = await db.execute(
        select(GeneratedDocument)
        .where(GeneratedDocument.user_id == user_id)
        .order_by(GeneratedDocument.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return DocumentList(documents=[_to_out(d) for d in result.scalars().all()], total=total or 0)


@router.get("/documents/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    doc = await db.get(GeneratedDocument, document_id)
    if doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    if doc.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return DocumentDetail(**_to_out(doc).model_dump(), content=doc.content)


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Stream the stored binary to its owner as an attachment."""
    try:
        filename, data, content_type = await pipeline.load_download(db, document_id, user_id)
    except FulfillmentError as e:
        raise _fulfillment_failure(e)

    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
