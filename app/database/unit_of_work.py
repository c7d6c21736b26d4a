"""All-or-nothing boundary for multi-entity sequences.

MongoDB offers no cross-collection transaction without a replica set, so
each mutation made through the unit of work registers a compensating step.
When the sequence raises, compensations run newest first and the original
error propagates. Hooks registered with :meth:`UnitOfWork.on_commit` run
only after the sequence completed; their failures are logged and leave the
committed state untouched.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar, Union

from beanie import Document

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Document)
Hook = Callable[[], Awaitable[Any]]


class UnitOfWork:

    def __init__(self, store):
        self.store = store
        self._compensations: List[Hook] = []
        self._after_commit: List[Hook] = []
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            await self.rollback()
            return False
        await self.commit()
        return False

    async def get(self, model: Type[D], query: Dict[str, Any]) -> Optional[D]:
        return await self.store.get(model, query)

    async def find(self, model: Type[D], query: Dict[str, Any], sort: Optional[str] = None,
                   limit: Optional[int] = None) -> List[D]:
        return await self.store.find(model, query, sort=sort, limit=limit)

    async def create(self, model: Type[D], data: Union[D, Dict[str, Any]]) -> D:
        document = await self.store.create(model, data)

        async def undo_create():
            await document.delete()

        self._compensations.append(undo_create)
        return document

    async def update(self, model: Type[D], query: Dict[str, Any], patch: Dict[str, Any]) -> Optional[D]:
        document = await self.store.get(model, query)
        if document is None:
            return None
        return await self.apply(document, patch)

    async def apply(self, document: D, patch: Dict[str, Any]) -> D:
        snapshot = document.model_copy(deep=True)
        updated = await self.store.apply(document, patch)

        async def undo_update():
            await self.store.restore(snapshot)

        self._compensations.append(undo_update)
        return updated

    async def delete(self, model: Type[D], query: Dict[str, Any]) -> Optional[D]:
        document = await self.store.delete(model, query)
        if document is None:
            return None

        async def undo_delete():
            await document.insert()

        self._compensations.append(undo_delete)
        return document

    def on_commit(self, hook: Hook) -> None:
        self._after_commit.append(hook)

    async def commit(self) -> None:
        self.committed = True
        self._compensations.clear()
        hooks, self._after_commit = self._after_commit, []
        for hook in hooks:
            try:
                await hook()
            except Exception as e:
                logger.error(f"Post-commit hook failed: {e}", exc_info=True)

    async def rollback(self) -> None:
        self.rolled_back = True
        self._after_commit.clear()
        while self._compensations:
            undo = self._compensations.pop()
            try:
                await undo()
            except Exception as e:
                logger.error(f"Compensation step failed during rollback: {e}", exc_info=True)
        logger.warning("Unit of work rolled back")
