"""Request and response schemas for session and node endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from convotree.generation.presets import GenerateRequestItem
from convotree.models import Role, Run

# -- Requests --


class SetRunsRequest(BaseModel):
    """Bulk replace. Runs are sanitized, so loosely shaped dicts are accepted."""

    runs: list[dict[str, Any]]


class SelectOptionRequest(BaseModel):
    option_id: str


class AddOptionRequest(BaseModel):
    content: str
    model: str | None = None


class AddNextTurnRequest(BaseModel):
    option_id: str
    content: str
    role: Role | None = None
    model: str | None = None


class EditNodeRequest(BaseModel):
    option_id: str
    run_id: str
    content: str


class PruneRequest(BaseModel):
    run_ids: list[str]


class GenerateRequest(BaseModel):
    """Request body for POST /api/session/nodes/{node_id}/generate.

    Either explicit requests or a preset id; explicit requests win.
    """

    option_id: str
    requests: list[GenerateRequestItem] | None = None
    preset_id: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)


class EvaluateRequest(BaseModel):
    """A preset supplies the analysis temperature unless one is given."""

    model: str | None = None
    preset_id: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)


# -- Responses --


class OptionResponse(BaseModel):
    id: str
    content: str
    run_ids: list[str]
    models: list[str]
    next_prefix: str
    follow_up_depth: int = 0
    score: int | None = None


class NodeResponse(BaseModel):
    id: str
    depth: int
    role: Role
    role_label: str
    prefix_key: str
    unique_run_count: int
    options: list[OptionResponse]


class PathStepResponse(BaseModel):
    node_id: str
    depth: int
    role: Role
    role_label: str
    selected_option_id: str | None = None
    content: str | None = None
    models: list[str] = Field(default_factory=list)
    run_ids: list[str] = Field(default_factory=list)
    pending: int = 0


class SessionResponse(BaseModel):
    runs: list[Run]
    root_key: str
    max_depth: int
    layers: list[list[NodeResponse]]
    path: list[PathStepResponse]
    selected_map: dict[str, str]
    pending: dict[str, int]


class MutationResponse(BaseModel):
    option_id: str | None = None
    changed: bool


class PruneResponse(BaseModel):
    removed: int
