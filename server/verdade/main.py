from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import InvalidRequest, UpstreamTransportError, VerificationError
from .llm_client import LLM_MODEL_DEFAULT, FactCheckClient
from .logging_config import get_logger, setup_logging
from .models import ErrorResponse, HealthResponse, ImageAttachment, VerificationRequest
from .normalizer import normalize_response
from .prompt import build_prompt, load_system_prompt

load_dotenv()
setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
logger = get_logger("main")


app = FastAPI(title="Verdade ou Fake")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VerificationError)
async def verification_error_handler(request: Request, exc: VerificationError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # never echo submitted form data back
    logger.info(f"Rejected malformed request on {request.url.path}: {len(exc.errors())} error(s)")
    return JSONResponse(status_code=InvalidRequest.status_code, content={"error": InvalidRequest.default_message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(status_code=500, content={"error": UpstreamTransportError.default_message})


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        model=os.getenv("LLM_MODEL", LLM_MODEL_DEFAULT),
        configured=bool(os.getenv("OPENAI_API_KEY")),
    )


async def read_request(
    text: Optional[str],
    input_type: Optional[str],
    image: Optional[UploadFile],
) -> VerificationRequest:
    attachment = None
    if image is not None:
        data = await image.read()
        # browsers send an empty part when no file was picked
        if data:
            attachment = ImageAttachment(data=data, mime_type=image.content_type or "")
    return VerificationRequest(text=text, image=attachment, input_type=input_type)


ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 401, 403, 429, 500, 503)}


@app.post("/api/verificar", responses=ERROR_RESPONSES)
@app.post("/api/verify", responses=ERROR_RESPONSES)
async def verify(
    text: Optional[str] = Form(None),
    input_type: Optional[str] = Form(None, alias="type"),
    image: Optional[UploadFile] = File(None),
):
    """
    Fact-check text, a link, and/or an image.

    Always answers with either a verdict record (Portuguese keys) or an
    ``{"error": ...}`` body with the matching status code.
    """
    req = await read_request(text, input_type, image)

    # raises MissingInput before any upstream work
    payload = build_prompt(req, system_prompt=load_system_prompt())
    logger.info(f"Verifying type={req.input_type or 'text'} text={(req.text or '').strip()[:80]!r}")
    if req.image is not None:
        logger.info(f"Attached image: {req.image.mime_type or 'unknown type'}, {len(req.image.data)} bytes")

    client = FactCheckClient()
    try:
        raw = await client.complete(payload)
    except VerificationError:
        raise
    except Exception as e:
        logger.exception("Unexpected failure calling the model")
        raise UpstreamTransportError() from e

    record = normalize_response(raw)
    logger.info(f"Verdict: {record.verdict.value} ({record.confidence})")
    return record.to_response()


def run():
    import uvicorn

    uvicorn.run(
        "verdade.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
