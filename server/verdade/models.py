from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, constr


class Verdict(str, Enum):
    TRUE = "VERDADEIRO"
    FALSE = "FALSO"
    MISLEADING = "ENGANOSO"
    UNVERIFIED = "SEM_EVIDENCIAS"


class ImageAttachment(BaseModel):
    data: bytes
    mime_type: str = "image/jpeg"


class VerificationRequest(BaseModel):
    text: Optional[str] = None
    image: Optional[ImageAttachment] = None
    # "text" | "url", informational only
    input_type: Optional[str] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @property
    def is_empty(self) -> bool:
        return not self.has_text and self.image is None


class VerdictRecord(BaseModel):
    """Normalized fact-check result, serialized by alias to the caller."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    verdict: Verdict = Field(..., alias="veredito")
    confidence: conint(ge=0, le=100) = Field(..., alias="confianca")
    summary: constr(min_length=1) = Field(..., alias="resumo")
    explanation: constr(min_length=1) = Field(..., alias="analise")
    legal_context: Optional[str] = Field(None, alias="contexto_juridico")
    sources_consulted: List[str] = Field(default_factory=list, alias="fontes_consultadas")
    tips: List[str] = Field(default_factory=list, alias="dicas")

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    ok: Literal[True] = True
    model: str
    configured: bool
