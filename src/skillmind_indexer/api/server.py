"""Read-only HTTP query service over the indexed tables."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from skillmind_indexer import __version__
from skillmind_indexer.core.config import ApiConfig
from skillmind_indexer.decoding.codec import normalize_address
from skillmind_indexer.storage import queries

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _token_key(token: str) -> str:
    """Canonical token address as stored; non-hex input is looked up verbatim."""
    try:
        return normalize_address(token)
    except ValueError:
        return token


def clamp_page(limit: Optional[int], offset: Optional[int], config: ApiConfig) -> tuple[int, int]:
    """Apply the default page size, cap it at the maximum and floor both at sane values."""
    if limit is None or limit < 1:
        limit = config.default_page_size
    limit = min(limit, config.max_page_size)
    offset = max(offset or 0, 0)
    return limit, offset


def create_app(engine: Engine, api_config: ApiConfig | None = None) -> FastAPI:
    """Build the query API bound to `engine`."""
    config = api_config or ApiConfig()

    app = FastAPI(
        title="SkillMind Indexer API",
        description="Read-only access to indexed exams, enrollments, certificates and token transfers",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_request_timing(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s - %.1fms", request.method, request.url.path, ms)
        return response

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Query failed on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    def get_conn() -> Iterator[Connection]:
        with engine.connect() as conn:
            yield conn

    def page(
        limit: Optional[int] = Query(None, description=f"Page size (max {config.max_page_size})"),
        offset: Optional[int] = Query(None, description="Rows to skip"),
    ) -> tuple[int, int]:
        return clamp_page(limit, offset, config)

    # ---------- health ----------

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "timestamp": _now_iso()}

    # ---------- exams ----------

    @app.get("/exams")
    def list_exams(
        creator: Optional[str] = None,
        paging: tuple[int, int] = Depends(page),
        conn: Connection = Depends(get_conn),
    ) -> list[dict[str, Any]]:
        limit, offset = paging
        return queries.get_exams(conn, limit=limit, offset=offset, creator=creator)

    @app.get("/exams/{exam_id}")
    def get_exam(exam_id: str, conn: Connection = Depends(get_conn)):
        exam = queries.get_exam_by_id(conn, exam_id)
        if exam is None:
            return JSONResponse(status_code=404, content={"error": "Exam not found"})
        exam_questions = queries.get_questions_by_exam_id(conn, exam_id)
        exam_enrollments = queries.get_enrollments_by_exam_id(conn, exam_id)
        return {
            "exam": exam,
            "questions": exam_questions,
            "enrollments": exam_enrollments,
            "statusHistory": queries.get_exam_status_history(conn, exam_id),
            "questionCount": len(exam_questions),
            "enrollmentCount": len(exam_enrollments),
        }

    @app.get("/questions/{exam_id}")
    def list_questions(exam_id: str, conn: Connection = Depends(get_conn)) -> dict[str, Any]:
        return {"questions": queries.get_questions_by_exam_id(conn, exam_id)}

    # ---------- enrollments / certificates ----------

    @app.get("/enrollments/exam/{exam_id}")
    def list_exam_enrollments(exam_id: str, conn: Connection = Depends(get_conn)) -> dict[str, Any]:
        return {"enrollments": queries.get_enrollments_by_exam_id(conn, exam_id)}

    @app.get("/enrollments/student/{student}")
    def list_student_enrollments(
        student: str,
        paging: tuple[int, int] = Depends(page),
        conn: Connection = Depends(get_conn),
    ) -> dict[str, Any]:
        limit, offset = paging
        return {"enrollments": queries.get_enrollments_by_student(conn, student, limit=limit, offset=offset)}

    @app.get("/certificates/{student}")
    def list_certificates(
        student: str,
        paging: tuple[int, int] = Depends(page),
        conn: Connection = Depends(get_conn),
    ) -> dict[str, Any]:
        limit, offset = paging
        return {"certificates": queries.get_certificates_by_student(conn, student, limit=limit, offset=offset)}

    # ---------- token transfers ----------

    @app.get("/transactions/address/{address}")
    def list_address_transactions(
        address: str,
        paging: tuple[int, int] = Depends(page),
        conn: Connection = Depends(get_conn),
    ) -> dict[str, Any]:
        limit, offset = paging
        return {"transactions": queries.get_transactions_by_address(conn, address, limit=limit, offset=offset)}

    @app.get("/transactions/token/{token}")
    def list_token_transactions(
        token: str,
        paging: tuple[int, int] = Depends(page),
        conn: Connection = Depends(get_conn),
    ) -> dict[str, Any]:
        limit, offset = paging
        return {"transactions": queries.get_transactions_by_token(conn, _token_key(token), limit=limit, offset=offset)}

    # ---------- stats ----------

    @app.get("/stats")
    def stats(conn: Connection = Depends(get_conn)) -> dict[str, Any]:
        counts = queries.count_rows(conn)
        return {
            "stats": {
                "exams": counts["exams"],
                "questions": counts["questions"],
                "enrollments": counts["enrollments"],
                "certificates": counts["certificates"],
                "transactions": counts["transactions"],
                "latestBlock": queries.latest_block(conn) or 0,
            },
            "timestamp": _now_iso(),
        }

    return app
