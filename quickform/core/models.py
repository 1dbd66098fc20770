"""Domain models describing virtual nodes and pipeline runs."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

NodeKind = Literal["file", "directory"]
OperationKind = Literal["state", "render"]


class NodeInfo(BaseModel):
    """Metadata about a single node in the virtual filesystem."""

    path: str = Field(..., description="Normalized virtual path ('' for root)")
    kind: NodeKind
    created: float = Field(..., description="Creation time (POSIX seconds)")
    modified: float | None = Field(default=None, description="Last write (files only)")
    size: int | None = Field(default=None, description="Content length in bytes (files only)")
    child_count: int | None = Field(default=None, description="Number of children (directories only)")


class OperationRecord(BaseModel):
    """Outcome of one executed operation."""

    index: int
    kind: OperationKind
    label: str
    template: str | None = None
    duration_s: float = Field(default=0.0, ge=0)


class RunReport(BaseModel):
    """Summary returned by a successful pipeline run."""

    output_dir: Path
    operations: list[OperationRecord] = Field(default_factory=list)
    written: list[str] = Field(default_factory=list, description="Virtual paths written by render operations")
    exported: int = Field(default=0, description="Number of files materialized on disk")
