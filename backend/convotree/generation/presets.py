"""Model presets: named fan-out configurations loaded from presets.yml."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

_PRESETS_PATH = Path(__file__).parent.parent / "presets.yml"


class GenerateRequestItem(BaseModel):
    model: str
    count: int = 1


class Preset(BaseModel):
    id: str
    name: str
    description: str = ""
    models: list[GenerateRequestItem] = Field(default_factory=list)
    default_temperature: float | None = None
    default_analysis_temperature: float | None = None

    @field_validator("default_temperature")
    @classmethod
    def _clamp_temperature(cls, value: float | None) -> float | None:
        if value is None:
            return None
        return min(max(value, 0.0), 2.0)


def load_presets(path: Path = _PRESETS_PATH) -> list[Preset]:
    if not path.exists():
        return []
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return [Preset.model_validate(p) for p in data.get("presets", [])]


def get_preset(preset_id: str, path: Path = _PRESETS_PATH) -> Preset:
    for preset in load_presets(path):
        if preset.id == preset_id:
            return preset
    raise PresetNotFoundError(preset_id)


class PresetNotFoundError(Exception):
    def __init__(self, preset_id: str) -> None:
        self.preset_id = preset_id
        super().__init__(f"Preset not found: {preset_id}")
