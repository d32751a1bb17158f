"""Wire schema for queued weather lookup jobs."""
from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from weather_service.core.exceptions import SerializationError

__all__ = ["Job", "decode_job", "encode_job"]


class Job(BaseModel):
    """A pending lookup: ``{"location": str, "fault": bool}``.

    Older producers wrote the flag as ``chaos``; both keys are accepted on
    input and ``fault`` is always written.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    location: str = Field(..., min_length=1)
    fault: bool = Field(default=False, validation_alias=AliasChoices("fault", "chaos"))

    @field_validator("location")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("location must not be blank")
        return value


def encode_job(job: Union[Job, Mapping[str, Any]]) -> str:
    try:
        model = job if isinstance(job, Job) else Job.model_validate(job)
    except ValidationError as exc:
        raise SerializationError(f"invalid job: {exc.errors()[0]['msg']}") from exc
    return model.model_dump_json()


def decode_job(raw: Union[str, bytes]) -> Job:
    try:
        return Job.model_validate_json(raw)
    except ValidationError as exc:
        raise SerializationError("malformed job record") from exc
