"""Entity Store: the narrow create/get/update/delete surface the loan core
persists through.

Entity types are Beanie document classes and predicates are MongoDB filter
documents. Nothing here spans more than one document; multi-step sequences
go through :class:`app.database.unit_of_work.UnitOfWork`.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from beanie import Document

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Document)


class EntityStore:

    async def get(self, model: Type[D], query: Dict[str, Any]) -> Optional[D]:
        return await model.find_one(query)

    async def find(
        self,
        model: Type[D],
        query: Dict[str, Any],
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[D]:
        cursor = model.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()

    async def create(self, model: Type[D], data: Union[D, Dict[str, Any]]) -> D:
        document = data if isinstance(data, model) else model(**data)
        await document.insert()
        logger.debug("Created %s %s", model.__name__, document.id)
        return document

    async def update(self, model: Type[D], query: Dict[str, Any], patch: Dict[str, Any]) -> Optional[D]:
        document = await self.get(model, query)
        if document is None:
            return None
        return await self.apply(document, patch)

    # Validates the patch against the document's model, then persists the changed fields
    async def apply(self, document: D, patch: Dict[str, Any]) -> D:
        model = type(document)
        merged = model.model_validate({**document.model_dump(), **patch})
        for key in patch:
            setattr(document, key, getattr(merged, key))
        if "last_modified" in model.model_fields:
            document.last_modified = datetime.utcnow()
        await document.save()
        return document

    async def delete(self, model: Type[D], query: Dict[str, Any]) -> Optional[D]:
        document = await self.get(model, query)
        if document is None:
            return None
        await document.delete()
        logger.debug("Deleted %s %s", model.__name__, document.id)
        return document

    # Writes a full document back as-is, re-inserting it when it was deleted
    async def restore(self, document: D) -> D:
        await document.save()
        return document

    def unit_of_work(self):
        from app.database.unit_of_work import UnitOfWork
        return UnitOfWork(self)


entity_store = EntityStore()
