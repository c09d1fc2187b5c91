from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class KnowledgeBase(BaseModel):
    """Everything the assistant remembers between runs.

    ``identity`` is the user's name and ``facts`` the taught key/value pairs.
    On disk the fields are stored as ``username`` and ``knowledge``; unknown
    fields in the document are ignored so older and newer files still load.
    Keys are compared exactly; trimming is up to whoever inserts them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity: str | None = Field(default=None, alias="username")
    facts: dict[str, str] = Field(default_factory=dict, alias="knowledge")

    def clear(self) -> None:
        self.identity = None
        self.facts.clear()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
