import uuid

from esg_lite.database.models import DocumentCategory, DocumentRecord
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.documents.exceptions import UploadRejectedError
from esg_lite.documents.models import NewDocument, UserContext
from esg_lite.documents.storage import FileStorage
from esg_lite.logging.logger import Log
from esg_lite.ocr.formats import JPEG, PDF, PNG, detect_mime_type
from esg_lite.quota.monthly_quota import MonthlyQuotaGate

SUPPORTED_MIME_TYPES = (PDF, JPEG, PNG)


class DocumentService:
    """Registers uploaded files as documents ready for OCR."""

    def __init__(
        self,
        documents: DocumentRepository,
        organizations: OrganizationRepository,
        storage: FileStorage,
        quota: MonthlyQuotaGate,
        max_upload_bytes: int,
    ) -> None:
        self._documents = documents
        self._organizations = organizations
        self._storage = storage
        self._quota = quota
        self._max_upload_bytes = max_upload_bytes

    def register_upload(
        self,
        user: UserContext,
        file_name: str,
        content: bytes,
        declared_mime_type: str | None,
        category: str | None,
    ) -> DocumentRecord:
        """Validate and store an upload, then create its UPLOADED record.

        Raises:
            UploadRejectedError: if the file is empty, too large or of an unsupported type.
            OrganizationBlockedError: if the organization is blocked.
            QuotaExceededError: if the monthly document ceiling is reached.
        """
        if not content:
            raise UploadRejectedError("Uploaded file is empty")
        if len(content) > self._max_upload_bytes:
            raise UploadRejectedError(
                f"File exceeds the {self._max_upload_bytes} byte upload limit"
            )
        mime_type = detect_mime_type(content, declared_mime_type)
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise UploadRejectedError(f"Unsupported file type: {mime_type}")

        organization = self._organizations.find_by_id(user.organization_id)
        self._quota.ensure_can_upload(organization)

        file_key = self._storage.save(user.user_id, file_name, content)
        try:
            document = self._documents.create(
                NewDocument(
                    id=uuid.uuid4().hex,
                    user_id=user.user_id,
                    organization_id=user.organization_id,
                    file_key=file_key,
                    file_name=file_name,
                    mime_type=mime_type,
                    file_size=len(content),
                    category=DocumentCategory.parse(category),
                )
            )
        except Exception:
            self._storage.delete(file_key)
            raise

        Log.info(
            "Document uploaded",
            document_id=document.id,
            user_id=user.user_id,
            size=document.file_size,
        )
        return document

    def get(self, document_id: str, user: UserContext) -> DocumentRecord:
        return self._documents.find_by_id(document_id, user_id=user.user_id)
