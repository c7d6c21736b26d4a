from datetime import datetime
from enum import Enum
from typing import Any, Dict

from bson import ObjectId


def convert_objectid(obj):
    """Convert ObjectId, enum and datetime values into JSON friendly values."""
    if isinstance(obj, dict):
        return {key: convert_objectid(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_objectid(item) for item in obj]
    elif isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def build_loan_response(loan) -> Dict[str, Any]:
    data = loan.model_dump(exclude={"revision_id"})
    response = convert_objectid(data)
    response["_id"] = response.pop("id", None)
    return response
