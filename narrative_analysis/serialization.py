import json
from typing import Any

from .contracts.base import Timestamp


class AnalysisEncoder(json.JSONEncoder):
    """
    JSON Encoder for analysis results and scheduler reports.

    RULES:
    1. Timestamps MUST be ISO 8601 strings (UTC).
    2. Contract types serialize through their own to_dict().
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Timestamp):
            return obj.to_iso()
        if hasattr(obj, "to_dict"):
            return obj.to_dict()

        return super().default(obj)


def to_json(obj: Any, indent: int = 2) -> str:
    """Serialize with key order preserved, so output is reproducible."""
    return json.dumps(obj, cls=AnalysisEncoder, indent=indent, ensure_ascii=False)
