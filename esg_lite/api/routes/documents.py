from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile

from esg_lite.api.dependencies import get_container, get_user
from esg_lite.container import Container
from esg_lite.documents.models import UserContext, document_to_dict

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", status_code=201)
def upload_document(
    file: UploadFile = File(...),
    category: str | None = Form(default=None),
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    content = file.file.read()
    document = container.documents.register_upload(
        user,
        file_name=file.filename or "document",
        content=content,
        declared_mime_type=file.content_type,
        category=category,
    )
    return {
        "success": True,
        "data": {
            "documentId": document.id,
            "fileName": document.file_name,
            "fileSize": document.file_size,
            "mimeType": document.mime_type,
            "category": document.category.value,
            "status": "uploaded",
        },
    }


@router.get("/{document_id}")
def get_document(
    document_id: str,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    document = container.documents.get(document_id, user)
    return {"success": True, "data": document_to_dict(document)}
