from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .logging_config import get_logger
from .models import Verdict, VerdictRecord

logger = get_logger("normalizer")


FALLBACK_CONFIDENCE = 50
RAW_EXCERPT_CHARS = 500

DEFAULT_SUMMARY = "Análise realizada."
DEFAULT_EXPLANATION = "O modelo não forneceu uma análise detalhada."
DEFAULT_TIPS = ["Verifique sempre em fontes oficiais."]

UNPARSED_SUMMARY = "Análise realizada mas formato de resposta inesperado."
UNPARSED_TIPS = ["Tente novamente ou reformule a pergunta."]

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*", re.IGNORECASE)

# English labels some models answer with despite the prompt
_VERDICT_ALIASES = {
    "TRUE": Verdict.TRUE,
    "FALSE": Verdict.FALSE,
    "MISLEADING": Verdict.MISLEADING,
    "UNVERIFIED": Verdict.UNVERIFIED,
}

# canonical key -> English-keyed variant
_KEY_ALIASES = {
    "veredito": "verdict",
    "confianca": "confidence",
    "resumo": "summary",
    "analise": "explanation",
    "fontes_consultadas": "sources",
    "dicas": "tips",
    "contexto_juridico": "context",
}


def extract_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """Pull the outermost JSON object out of a model reply, or None."""
    text = _FENCE_RE.sub("", raw or "").strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    try:
        data = json.loads(text, strict=False)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def _field(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None:
        value = data.get(_KEY_ALIASES[key])
    return value


def _verdict(value: Any) -> Verdict:
    if isinstance(value, str):
        label = value.strip().upper().replace(" ", "_")
        try:
            return Verdict(label)
        except ValueError:
            pass
        if label in _VERDICT_ALIASES:
            return _VERDICT_ALIASES[label]
    return Verdict.UNVERIFIED


def _confidence(value: Any) -> int:
    if isinstance(value, bool):
        return FALLBACK_CONFIDENCE
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return FALLBACK_CONFIDENCE
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        return FALLBACK_CONFIDENCE
    return max(0, min(100, int(round(value))))


def _clean(s: str) -> str:
    # lone surrogates survive json.loads but are not valid unicode
    return s.encode("utf-8", "replace").decode("utf-8").strip()


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return _clean(value) or None
    return None


def _string_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    items = []
    for item in value:
        if item is None:
            continue
        s = _clean(item if isinstance(item, str) else json.dumps(item, ensure_ascii=False))
        if s:
            items.append(s)
    return items


def unparsed_record(raw: str) -> VerdictRecord:
    """Degraded record for a reply with no usable JSON object."""
    excerpt = _clean(raw or "")[:RAW_EXCERPT_CHARS]
    return VerdictRecord(
        verdict=Verdict.UNVERIFIED,
        confidence=FALLBACK_CONFIDENCE,
        summary=UNPARSED_SUMMARY,
        explanation=excerpt or DEFAULT_EXPLANATION,
        legal_context=None,
        sources_consulted=[],
        tips=list(UNPARSED_TIPS),
    )


def normalize_response(raw: str) -> VerdictRecord:
    """
    Turn the model's raw reply into a VerdictRecord.

    Never raises: fenced or prose-wrapped JSON is extracted, invalid fields are
    replaced by defaults, and a reply with no JSON object at all becomes an
    UNVERIFIED record carrying the start of the raw text.
    """
    data = extract_json_object(raw)
    if data is None:
        logger.warning(f"Model reply is not a JSON object, returning fallback ({len(raw or '')} chars)")
        return unparsed_record(raw)

    sources = _string_list(_field(data, "fontes_consultadas"))
    tips = _string_list(_field(data, "dicas"))

    try:
        record = VerdictRecord(
            verdict=_verdict(_field(data, "veredito")),
            confidence=_confidence(_field(data, "confianca")),
            summary=_text(_field(data, "resumo")) or DEFAULT_SUMMARY,
            explanation=_text(_field(data, "analise")) or DEFAULT_EXPLANATION,
            legal_context=_text(_field(data, "contexto_juridico")),
            sources_consulted=sources if sources is not None else [],
            tips=tips if tips is not None else list(DEFAULT_TIPS),
        )
    except ValidationError as e:
        logger.warning(f"Model reply failed record validation, returning fallback: {e.error_count()} error(s)")
        return unparsed_record(raw)
    logger.debug(f"Normalized verdict={record.verdict.value} confidence={record.confidence}")
    return record
