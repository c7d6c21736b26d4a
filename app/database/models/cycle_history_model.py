from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class CycleEntry(BaseModel):
    cycle_number: int = Field(..., description="Cycle this entry records")
    screening: Optional[PydanticObjectId] = None
    loan: Optional[PydanticObjectId] = None
    acat: Optional[PydanticObjectId] = None
    started_by: Optional[PydanticObjectId] = None
    last_edit_by: Optional[PydanticObjectId] = None


class CycleHistory(Document):
    client: PydanticObjectId = Field(..., description="Client the ledger belongs to")
    cycle_number: int = Field(default=1, description="Number of the current cycle")
    cycles: List[CycleEntry] = Field(default_factory=list)
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "histories"

    # Returns the entry of the current cycle, if the ledger has one
    def current_cycle(self) -> Optional[CycleEntry]:
        for entry in self.cycles:
            if entry.cycle_number == self.cycle_number:
                return entry
        return None
