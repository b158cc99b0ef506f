"""Canonical data structures for convotree.

Defined once here, referenced everywhere else. Turns and runs are the ground
truth and are pydantic models so they round-trip through export/import.
Nodes, options and trees are derived views rebuilt from runs on every change;
they are plain dataclasses because the builder fills them in place.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

ROOT_KEY = "root"
EXPORT_VERSION = "1.0"


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


def next_role(role: Role) -> Role:
    return Role.ASSISTANT if role == Role.USER else Role.USER


def friendly_role_label(role: Role) -> str:
    return "User" if role == Role.USER else "AI"


# ---------------------------------------------------------------------------
# Ground truth
# ---------------------------------------------------------------------------


class SamplingParams(BaseModel):
    temperature: float | None = None
    max_tokens: int | None = None


class Turn(BaseModel):
    role: Role
    content: str
    model: str | None = None


class Run(BaseModel):
    id: str
    turns: list[Turn]


# ---------------------------------------------------------------------------
# Derived tree view
# ---------------------------------------------------------------------------


@dataclass
class Option:
    """One distinct content variant observed at a node."""

    id: str
    content: str
    next_prefix: str
    run_ids: list[str] = field(default_factory=list)
    models: list[str] = field(default_factory=list)


@dataclass
class Node:
    """Everything that could appear at turn `depth`, given arrival via `prefix_key`."""

    id: str
    depth: int
    role: Role
    prefix_key: str
    options: list[Option] = field(default_factory=list)


@dataclass
class Tree:
    nodes_by_id: dict[str, Node]
    layers: list[list[Node]]
    root_key: str
    max_depth: int


@dataclass
class PathStep:
    node: Node
    selected_option: Option | None
    run_ids: list[str] = field(default_factory=list)
    """Runs realizing the displayed path from the root down to this step."""


# ---------------------------------------------------------------------------
# Scoring annotations
# ---------------------------------------------------------------------------


class OptionScore(BaseModel):
    option_id: str
    score: int | None = None
    analysis: str = ""


class NodeEvaluation(BaseModel):
    """Rubric and per-option scores attached to a node. Display-only."""

    node_id: str
    model: str
    rubric: str | None = None
    scores: dict[str, OptionScore] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Export envelope
# ---------------------------------------------------------------------------


class ConvoTreeExport(BaseModel):
    """Wire format of an export blob. Keys are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = EXPORT_VERSION
    exported_at: datetime = Field(alias="exportedAt")
    root_key: str = Field(default=ROOT_KEY, alias="rootKey")
    runs: list[Run]
