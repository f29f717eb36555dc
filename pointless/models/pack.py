from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _first_present(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


class Answer(CamelModel):
    text: str = Field(min_length=1)
    points: int = Field(default=0, ge=0, le=100)
    aliases: list[str] = Field(default_factory=list)
    translations: dict[str, dict[str, Any]] | None = None

    @model_validator(mode="before")
    @classmethod
    def _ingest(cls, data: Any) -> Any:
        # Packs from different builders name these fields differently
        if isinstance(data, dict):
            data = dict(data)
            data["text"] = _first_present(data, "text", "answer")
            points = _first_present(data, "points", "score")
            data["points"] = 0 if points is None else points
            data.pop("answer", None)
            data.pop("score", None)
            if data.get("aliases") is None:
                data["aliases"] = []
        return data


class Category(CamelModel):
    id: str | None = None
    prompt: str = Field(min_length=1)
    question: str | None = None
    type: str = "standard"
    answers: list[Answer] = Field(min_length=1)
    translations: dict[str, dict[str, Any]] | None = None

    @model_validator(mode="before")
    @classmethod
    def _ingest(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["prompt"] = _first_present(data, "prompt", "question", "name")
            data.pop("name", None)
            if data.get("type") is None:
                data["type"] = "standard"
            if data.get("id") is not None:
                data["id"] = str(data["id"])
        return data


class Pack(CamelModel):
    title: str | None = None
    categories: list[Category] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _ingest(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["title"] = _first_present(data, "title", "name")
            data.pop("name", None)
        return data
