from app.database.store import EntityStore, entity_store
from app.database.unit_of_work import UnitOfWork
