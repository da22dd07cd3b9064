"""Embedding request and response models."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingOptions(BaseModel):
    """Request body of an embedding call."""
    model_config = ConfigDict(extra="allow")

    model: str
    input: Union[str, List[str], List[int], List[List[int]]]
    dimensions: Optional[int] = None
    encoding_format: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class EmbeddingUsage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int = 0
    total_tokens: int = 0

    @property
    def input_tokens(self) -> int:
        return self.prompt_tokens


class Embedding(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    embedding: Union[List[float], str] = Field(default_factory=list)


class EmbeddingCollection(BaseModel):
    """Embedding response."""
    model_config = ConfigDict(extra="ignore")

    model: Optional[str] = None
    data: List[Embedding] = Field(default_factory=list)
    usage: Optional[EmbeddingUsage] = None
