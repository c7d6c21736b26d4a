from typing import Any, Dict, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId

# Keys a client may send back with an entity that must never be written through an edit
IDENTITY_FIELDS = ("_id", "id", "_v", "__v", "revision_id", "date_created", "last_modified")


# Converts a string or ObjectId into a PydanticObjectId, None when it is not a valid id
def parse_object_id(value: Any) -> Optional[PydanticObjectId]:
    if value is None or value == "":
        return None
    if isinstance(value, PydanticObjectId):
        return value
    try:
        return PydanticObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def strip_identity_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in IDENTITY_FIELDS}
