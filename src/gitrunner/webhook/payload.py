# webhook/payload.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ParseError
from ..model import PushEvent


class _Repository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    clone_url: str = Field(min_length=1)


class PushPayload(BaseModel):
    """The slice of a push event a build needs; everything else is ignored."""
    model_config = ConfigDict(extra="ignore")

    repository: _Repository
    after: str = Field(min_length=1)


def parse_push(raw_body: bytes) -> PushEvent:
    """
    Extract clone URL and head commit from a push event body.

    Raises:
        ParseError: Body is not a JSON object or a required field is missing
    """
    try:
        payload = PushPayload.model_validate_json(raw_body)
    except ValidationError as e:
        raise ParseError("invalid push payload", cause=str(e)) from e

    return PushEvent(clone_url=payload.repository.clone_url, commit_ref=payload.after)
