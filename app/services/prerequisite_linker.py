"""Prerequisite Linker.

Second pass over a batch of fresh clones: every prerequisite copied from
the template still names a template question, and is rewritten here to
name that question's clone inside the same batch. Prerequisites that
cannot be resolved within the batch are dropped.

Two strategies are supported. ``identity`` follows the original-to-clone
id map built while cloning. ``text`` is the legacy behaviour: look up the
template question's text and take the first clone in the batch with the
same text, which picks the wrong target when a batch repeats a question
text.
"""
import logging
from typing import Dict, List, Optional

from beanie import PydanticObjectId

from app.core.config import settings
from app.database.models import Prerequisite, Question
from app.services.question_cloner import LinkBatch

logger = logging.getLogger(__name__)

IDENTITY = "identity"
TEXT = "text"


class PrerequisiteLinker:

    def __init__(self, uow, strategy: Optional[str] = None):
        self.uow = uow
        self.strategy = strategy or settings.PREREQUISITE_LINK_STRATEGY
        if self.strategy not in (IDENTITY, TEXT):
            raise ValueError(f"Unknown prerequisite link strategy: {self.strategy}")
        self._text_cache: Dict[PydanticObjectId, Optional[str]] = {}

    async def link(self, batch: LinkBatch) -> Dict[PydanticObjectId, List[Prerequisite]]:
        resolved_by_clone: Dict[PydanticObjectId, List[Prerequisite]] = {}

        for record in batch:
            resolved: List[Prerequisite] = []
            for prerequisite in record.original_prerequisites:
                target = await self._resolve(prerequisite.question, batch)
                if target is None:
                    logger.debug(
                        f"Dropping prerequisite {prerequisite.question} of clone {record.new_id}: "
                        f"no match in batch '{batch.label}'"
                    )
                    continue
                resolved.append(Prerequisite(question=target, answer=prerequisite.answer))
            resolved_by_clone[record.new_id] = resolved

        for new_id, prerequisites in resolved_by_clone.items():
            await self.uow.update(Question, {"_id": new_id}, {"prerequisites": prerequisites})

        return resolved_by_clone

    async def _resolve(self, original_ref: PydanticObjectId, batch: LinkBatch) -> Optional[PydanticObjectId]:
        if self.strategy == IDENTITY:
            return batch.clone_of(original_ref)

        question_text = await self._template_text(original_ref)
        if question_text is None:
            return None
        match = batch.find_by_text(question_text)
        return match.new_id if match else None

    async def _template_text(self, question_id: PydanticObjectId) -> Optional[str]:
        if question_id not in self._text_cache:
            question = await self.uow.get(Question, {"_id": question_id})
            self._text_cache[question_id] = question.question_text if question else None
        return self._text_cache[question_id]
