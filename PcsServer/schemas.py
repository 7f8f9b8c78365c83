from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional, Union


class RequestEnvelope(BaseModel):
    """Inbound frame: {"command": "...", "args": {...}, "requestId": "..."}"""
    model_config = ConfigDict(populate_by_name=True)

    command: str
    args: Optional[Dict[str, Any]] = None
    request_id: Optional[Union[str, int]] = Field(default=None, alias="requestId")
