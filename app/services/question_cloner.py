"""Tree Cloner.

Duplicates a template question, with its nested sub-questions, into new
records owned by one loan application. Each clone is registered in the
caller's :class:`LinkBatch` so the prerequisite linker can re-point
cross-references once the whole batch exists.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from beanie import PydanticObjectId

from app.core.errors import PreconditionFailed
from app.database.models import Owner, Prerequisite, Question

logger = logging.getLogger(__name__)

# Fields a clone never inherits from its template
_NOT_CLONED = {"id", "revision_id", "date_created", "last_modified", "sub_questions", "prerequisites", "owner"}


@dataclass
class PendingLink:
    new_id: PydanticObjectId
    original_id: PydanticObjectId
    question_text: str
    original_prerequisites: List[Prerequisite] = field(default_factory=list)


class LinkBatch:
    """Pending-link accumulator of one instantiation batch.

    A batch is one section, or the top-level flat question list. Create a
    fresh batch for each; records never carry over between batches.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self._records: List[PendingLink] = []
        self._clone_ids: Dict[PydanticObjectId, PydanticObjectId] = {}

    def add(self, record: PendingLink) -> None:
        self._records.append(record)
        self._clone_ids.setdefault(record.original_id, record.new_id)

    def clone_of(self, original_id: PydanticObjectId) -> Optional[PydanticObjectId]:
        return self._clone_ids.get(original_id)

    # First record whose text matches; ambiguous when a batch repeats a question text
    def find_by_text(self, question_text: str) -> Optional[PendingLink]:
        for record in self._records:
            if record.question_text == question_text:
                return record
        return None

    @property
    def new_ids(self) -> List[PydanticObjectId]:
        return [record.new_id for record in self._records]

    def __iter__(self) -> Iterator[PendingLink]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


class QuestionCloner:

    def __init__(self, uow, owner: Owner):
        self.uow = uow
        self.owner = owner

    # Clones the question tree rooted at question_id; returns None when the template question is missing
    async def clone(self, question_id: PydanticObjectId, batch: LinkBatch) -> Optional[Question]:
        arena, order = await self._load_tree(question_id)
        if not order:
            logger.warning(f"Template question {question_id} not found, skipping clone")
            return None

        clones: Dict[PydanticObjectId, Question] = {}
        for original_id in order:
            original = arena[original_id]
            data = original.model_dump(exclude=_NOT_CLONED)
            data["sub_questions"] = [clones[child].id for child in original.sub_questions if child in clones]
            data["prerequisites"] = []
            data["owner"] = self.owner

            clone = await self.uow.create(Question, data)
            clones[original_id] = clone
            batch.add(PendingLink(
                new_id=clone.id,
                original_id=original_id,
                question_text=original.question_text,
                original_prerequisites=list(original.prerequisites),
            ))

        logger.debug(f"Cloned question {question_id} as {clones[question_id].id} ({len(order)} nodes)")
        return clones[question_id]

    async def _load_tree(self, root_id: PydanticObjectId) -> Tuple[Dict[PydanticObjectId, Question], List[PydanticObjectId]]:
        """Loads the sub-tree under root_id and returns it with a post-order.

        Nodes still open are exactly the ancestors of the node being
        visited, so meeting one again is a cycle. Meeting a finished node
        means two parents share it. Both break the tree shape and are
        rejected before anything is written.
        """
        arena: Dict[PydanticObjectId, Question] = {}
        order: List[PydanticObjectId] = []
        state: Dict[PydanticObjectId, str] = {}
        stack: List[Tuple[PydanticObjectId, bool]] = [(root_id, False)]

        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                state[node_id] = "done"
                order.append(node_id)
                continue

            if state.get(node_id) == "open":
                raise PreconditionFailed(f"Template question {root_id} contains a cycle through question {node_id}")
            if state.get(node_id) == "done":
                raise PreconditionFailed(f"Template question {node_id} appears more than once under question {root_id}")

            question = await self.uow.get(Question, {"_id": node_id})
            if question is None:
                if node_id != root_id:
                    logger.warning(f"Sub-question {node_id} of template question {root_id} not found, skipping")
                continue

            arena[node_id] = question
            state[node_id] = "open"
            stack.append((node_id, True))
            for child_id in reversed(question.sub_questions):
                stack.append((child_id, False))

        return arena, order
