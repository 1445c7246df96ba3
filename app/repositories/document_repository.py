from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Document
from app.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Stored files for policies, claims and service requests."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def list_for_claim(self, claim_id: UUID, document_types: Optional[Sequence[str]] = None) -> List[Document]:
        query = select(Document).where(Document.claim_id == claim_id)
        if document_types:
            query = query.where(Document.document_type.in_(list(document_types)))
        result = await self.session.execute(query.order_by(Document.uploaded_date))
        return list(result.scalars().all())

    async def count_by_type(self, claim_id: UUID) -> Dict[str, int]:
        """Counts shown on the upload page: photos, receipt and other."""
        counts = {"photos": 0, "receipt": 0, "other": 0}
        for document in await self.list_for_claim(claim_id):
            if document.document_type == "photo":
                counts["photos"] += 1
            elif document.document_type == "receipt":
                counts["receipt"] += 1
            else:
                counts["other"] += 1
        return counts

    async def set_ai_analysis(self, document_id: UUID, analysis: Dict[str, Any]) -> Optional[Document]:
        """Store an analysis under ``metadata.ai_analysis`` keeping other metadata."""
        document = await self.get_by_id(document_id)
        if document is None:
            return None
        metadata = dict(document.metadata_ or {})
        metadata["ai_analysis"] = analysis
        return await self.update(document_id, metadata_=metadata)
