"""Diff job descriptors and the tagged per-image result."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class DiffJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    baseline_path: str
    candidate_path: str
    output_path: str
    threshold: float = Field(ge=0.0, le=1.0)


class Unchanged(BaseModel):
    model_config = ConfigDict(frozen=True)
    status: Literal["unchanged"] = "unchanged"


class Changed(BaseModel):
    model_config = ConfigDict(frozen=True)
    status: Literal["changed"] = "changed"
    mismatched_pixels: int = Field(gt=0)
    hash: Optional[str] = None  # SHA-256 of the written diff PNG


class Added(BaseModel):
    """Only the candidate side exists."""
    model_config = ConfigDict(frozen=True)
    status: Literal["added"] = "added"


class Removed(BaseModel):
    """Only the baseline side exists."""
    model_config = ConfigDict(frozen=True)
    status: Literal["removed"] = "removed"


DiffResult = Annotated[
    Union[Unchanged, Changed, Added, Removed],
    Field(discriminator="status"),
]

diff_result_adapter: TypeAdapter[DiffResult] = TypeAdapter(DiffResult)


def parse_diff_result(data: dict) -> Unchanged | Changed | Added | Removed:
    """Rebuild a DiffResult from its serialized form."""
    return diff_result_adapter.validate_python(data)
