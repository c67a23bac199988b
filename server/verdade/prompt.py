from __future__ import annotations

import base64
import os
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel

from .errors import MissingInput
from .logging_config import get_logger
from .models import VerificationRequest

logger = get_logger("prompt")


SYSTEM_PROMPT = """Você é um verificador de fatos especializado, cético e rigoroso. Sua tarefa é analisar textos, links, imagens e afirmações e determinar se são verdadeiros.

Ao analisar:
1. Afirmações extraordinárias exigem evidências extraordinárias.
2. Verifique se a informação está desatualizada ou se é um evento antigo apresentado como novo.
3. Considere a credibilidade da fonte e prefira fontes primárias (documentos oficiais, estudos científicos, comunicados institucionais).
4. Identifique citações fora de contexto, imagens manipuladas, estatísticas distorcidas, apelos emocionais e teorias conspiratórias.
5. Quando relevante, explique implicações legais ou técnicas de forma simples.
6. Seja absolutamente neutro em questões políticas.

Responda EXCLUSIVAMENTE com um objeto JSON válido, sem texto antes ou depois e sem markdown:

{
  "veredito": "VERDADEIRO" | "FALSO" | "ENGANOSO" | "SEM_EVIDENCIAS",
  "confianca": número inteiro de 0 a 100,
  "resumo": "no máximo 2 frases curtas sobre o veredito",
  "analise": "análise de 2 a 4 frases com o contexto relevante",
  "fontes_consultadas": ["fontes ou bases de conhecimento usadas"],
  "dicas": ["dicas práticas para o usuário verificar isso sozinho"],
  "contexto_juridico": "implicações legais relevantes, ou null"
}

Vereditos:
- VERDADEIRO: informação correta, verificável e em contexto adequado.
- FALSO: informação comprovadamente incorreta ou fabricada.
- ENGANOSO: tem elementos verdadeiros, mas distorcidos, fora de contexto ou com conclusões incorretas.
- SEM_EVIDENCIAS: não é possível confirmar nem refutar com as informações disponíveis.

Se o assunto for saúde, recomende consultar profissionais. Se envolver questões jurídicas, indique a necessidade de consulta especializada.
NUNCA invente fatos ou fontes. Se não souber, prefira "SEM_EVIDENCIAS"."""

ACCEPTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_IMAGE_TYPE = "image/jpeg"

_JSON_ONLY = "Responda APENAS com o JSON no formato especificado."


class PromptPayload(BaseModel):
    system: str
    content: List[Dict[str, Any]]


def load_system_prompt(path: str | None = None) -> str:
    """
    Return the system instruction sent with every verification.

    A file named by ``path`` (or the SYSTEM_PROMPT_PATH env var) replaces the
    built-in prompt so it can be tuned without a code change.
    """
    path = path or os.getenv("SYSTEM_PROMPT_PATH")
    if not path:
        return SYSTEM_PROMPT
    prompt = Path(path).read_text(encoding="utf-8").strip()
    if not prompt:
        raise ValueError(f"System prompt file is empty: {path}")
    logger.info(f"Loaded system prompt from {path} ({len(prompt)} chars)")
    return prompt


def image_media_type(declared: str | None) -> str:
    """Map a declared MIME type onto one the model accepts, falling back to JPEG."""
    mime = (declared or "").split(";", 1)[0].strip().lower()
    if mime in ACCEPTED_IMAGE_TYPES:
        return mime
    logger.debug(f"Unrecognized image type {declared!r}, tagging as {DEFAULT_IMAGE_TYPE}")
    return DEFAULT_IMAGE_TYPE


def user_message(request: VerificationRequest) -> str:
    if request.has_text and request.image is not None:
        return (
            "Analise a imagem enviada junto com a seguinte informação e verifique se o conteúdo é verdadeiro:"
            f'\n\n"{request.text.strip()}"\n\n'
            "Transcreva o texto visível na imagem e considere os dois na verificação. " + _JSON_ONLY
        )
    if request.has_text:
        return f'Analise e verifique a seguinte informação:\n\n"{request.text.strip()}"\n\n{_JSON_ONLY}'
    return (
        "Analise a imagem enviada e verifique se o conteúdo apresentado é verdadeiro. "
        "Transcreva o texto visível e faça a verificação. " + _JSON_ONLY
    )


def build_prompt(request: VerificationRequest, system_prompt: str | None = None) -> PromptPayload:
    """
    Build the system instruction and ordered user content parts for one request.

    The image part (if any) always precedes the text part.
    """
    if request.is_empty:
        raise MissingInput()

    content: List[Dict[str, Any]] = []
    if request.image is not None:
        media_type = image_media_type(request.image.mime_type)
        encoded = base64.b64encode(request.image.data).decode("ascii")
        content.append({
            "type": "image_url",
            "image_url": {"url": f"data:{media_type};base64,{encoded}"},
        })

    content.append({"type": "text", "text": user_message(request)})

    return PromptPayload(system=system_prompt or SYSTEM_PROMPT, content=content)
