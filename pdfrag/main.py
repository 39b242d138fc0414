"""Quart application exposing PDF upload and question answering."""
import logging
import sys
from typing import Optional

import pydantic
import structlog
from pydantic import BaseModel
from quart import Quart, jsonify, request

from pdfrag.config import Settings
from pdfrag.errors import ConfigurationError, PdfRagError, ValidationError
from pdfrag.rag.ingest import Document, validate_document_type
from pdfrag.rag.pdf_extract import extract_pdf
from pdfrag.services import Services, build_services


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()


class ChatRequest(BaseModel):
    query: Optional[str] = None
    persona: Optional[str] = None


def error_response(error: PdfRagError):
    return jsonify(error.to_dict()), error.status_code


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> Quart:
    """Create the Quart app.

    Args:
        settings: Runtime settings (read from the environment when omitted)
        services: Prebuilt pipeline components; built before serving when omitted
    """
    settings = settings or (services.settings if services else Settings.from_env())
    app = Quart(__name__)
    state = {"services": services}

    @app.before_serving
    async def startup():
        if state["services"] is None:
            try:
                state["services"] = build_services(settings)
            except ConfigurationError as e:
                # /health/ready reports the missing settings
                logger.warning("services_not_configured", error=str(e))
                return
        logger.info("app_started", vector_backend=state["services"].vector_index.name)

    def get_services() -> Services:
        if state["services"] is None:
            state["services"] = build_services(settings)
        return state["services"]

    @app.route("/api/upload/pdf", methods=["POST"])
    async def upload_pdf():
        """Handle a PDF upload and index it.

        Expects multipart form data with a ``file`` field.

        Returns JSON:
        {
            "message": "...",
            "filename": "doc.pdf",
            "chunksProcessed": 3,
            "pageCount": 2
        }
        """
        try:
            files = await request.files
            upload = files.get("file")
            if upload is None or not upload.filename:
                raise ValidationError("No file uploaded")

            # Reject before reading or extracting anything
            validate_document_type(upload.filename, upload.mimetype)

            extracted = extract_pdf(upload.read())
            document = Document(
                filename=upload.filename,
                text=extracted.text,
                page_count=extracted.page_count,
            )
            result = await get_services().ingest_pipeline.ingest(document, upload.mimetype)

            logger.info(
                "pdf_upload_completed",
                filename=result.filename,
                chunks_processed=result.chunks_processed,
            )
            return jsonify(result.to_dict())

        except PdfRagError as e:
            logger.error("pdf_upload_failed", kind=e.kind, error=str(e))
            return error_response(e)

    @app.route("/api/chat", methods=["POST"])
    async def chat():
        """Answer a question from the uploaded document.

        Expects JSON body:
        {
            "query": "question text",
            "persona": "default" | "lawyer" | "teacher"  // optional
        }

        Returns JSON:
        {
            "query": "question text",
            "answer": "answer text",
            "context": ["block 1", ...]
        }
        """
        try:
            data = await request.get_json(silent=True)
            try:
                body = ChatRequest.model_validate(data or {})
            except pydantic.ValidationError as e:
                raise ValidationError("Query is required", detail=str(e)) from e

            logger.info(
                "chat_request_received",
                query_length=len(body.query or ""),
                persona=body.persona,
            )

            result = await get_services().answerer.answer(body.query, body.persona)
            return jsonify(result.to_dict())

        except PdfRagError as e:
            logger.error("chat_request_failed", kind=e.kind, error=str(e))
            return error_response(e)

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - report configuration problems."""
        missing = settings.missing_credentials()
        checks = {
            "status": "healthy" if not missing else "unhealthy",
            "vector_backend": settings.vector_backend,
            "embedding_model": settings.embedding_model,
            "generation_model": settings.gemini_model,
        }
        if missing:
            checks["error"] = f"Missing configuration: {', '.join(missing)}"
        return jsonify(checks), 200 if not missing else 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    # For development - use scripts/serve.sh (hypercorn) in production
    app.run(host="0.0.0.0", port=5000, debug=True)
