from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio_api.schemas import FirstVisitMetricsRequest, PayrollMetricsRequest
from studio_core.config import Settings, configure_logging, load_settings
from studio_core.errors import ParseError
from studio_core.filters import (
    filter_first_visit_records,
    filter_payroll_records,
    normalize_first_visit_filters,
    normalize_payroll_filters,
)
from studio_core.first_visit import parse_first_visit_workbook
from studio_core.metrics import (
    attendance_by_hour,
    attendance_by_instructor,
    attendance_by_weekday,
    calculate_first_visit_metrics,
    calculate_metrics,
    class_distribution,
    earnings_by_instructor,
    earnings_over_time,
    new_clients_by_category,
    new_clients_by_month,
    payroll_by_month,
    referral_source_counts,
    retention_by_referral,
    sessions_by_instructor,
)
from studio_core.payroll import parse_payroll_workbook


settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Studio Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validate_excel_upload(filename: Optional[str], size: int, config: Settings = settings) -> Optional[str]:
    """Return a user-facing error for an unacceptable upload, or ``None``."""
    if not filename:
        return "No file provided"
    extension = filename.lower().rsplit(".", 1)[-1]
    if extension not in config.allowed_extensions:
        return "File must be .xls or .xlsx format"
    if size > config.max_upload_bytes:
        return f"File size must be less than {config.max_upload_bytes // (1024 * 1024)}MB"
    return None


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                pd.Timestamp: lambda ts: ts.isoformat(),
                datetime: lambda dt: dt.isoformat(),
                date: lambda d: d.isoformat(),
            },
        )
    )


def _error(status_code: int, exc_or_message: object, error_type: Optional[str] = None) -> JSONResponse:
    if isinstance(exc_or_message, BaseException):
        error_type = error_type or type(exc_or_message).__name__
    return JSONResponse(status_code=status_code, content={"error": str(exc_or_message), "type": error_type or "Error"})


@app.post("/payroll/parse")
def payroll_parse(file: UploadFile = File(...)):
    content = file.file.read()
    invalid = validate_excel_upload(file.filename, len(content))
    if invalid:
        return _error(400, invalid, "ValidationError")
    try:
        result = parse_payroll_workbook(content, filename=file.filename or "")
        return _json(
            {
                "date_range": result.date_range,
                "payroll_data": result.payroll_data,
                "row_count": result.row_count,
                "metrics": calculate_metrics(result.payroll_data),
            }
        )
    except ParseError as exc:
        logger.warning("payroll_parse rejected %s: %s", file.filename, exc)
        return _error(422, exc)
    except Exception as exc:
        logger.exception("payroll_parse failed")
        return _error(500, exc)


@app.post("/first-visit/parse")
def first_visit_parse(file: UploadFile = File(...)):
    content = file.file.read()
    invalid = validate_excel_upload(file.filename, len(content))
    if invalid:
        return _error(400, invalid, "ValidationError")
    try:
        result = parse_first_visit_workbook(content)
        return _json(
            {
                "first_visit_data": result.first_visit_data,
                "date_range": result.date_range,
                "service_categories": result.service_categories,
                "staff_list": result.staff_list,
                "referral_types": result.referral_types,
                "total_records": result.total_records,
                "metrics": calculate_first_visit_metrics(result.first_visit_data),
            }
        )
    except ParseError as exc:
        logger.warning("first_visit_parse rejected %s: %s", file.filename, exc)
        return _error(422, exc)
    except Exception as exc:
        logger.exception("first_visit_parse failed")
        return _error(500, exc)


@app.post("/payroll/metrics")
def payroll_metrics(request: PayrollMetricsRequest):
    try:
        filters = normalize_payroll_filters(request.filters.model_dump())
        records = filter_payroll_records([r.model_dump() for r in request.records], filters)
        return _json(
            {
                "metrics": calculate_metrics(records),
                "earnings_by_instructor": earnings_by_instructor(records),
                "sessions_by_instructor": sessions_by_instructor(records),
                "class_distribution": class_distribution(records),
                "earnings_over_time": earnings_over_time(records),
                "payroll_by_month": payroll_by_month(records),
                "attendance_by_instructor": attendance_by_instructor(records),
                "attendance_by_hour": attendance_by_hour(records),
                "attendance_by_weekday": attendance_by_weekday(records),
            }
        )
    except Exception as exc:
        logger.exception("payroll_metrics failed")
        return _error(500, exc)


@app.post("/first-visit/metrics")
def first_visit_metrics(request: FirstVisitMetricsRequest, min_clients: int = 10):
    try:
        filters = normalize_first_visit_filters(request.filters.model_dump())
        records = filter_first_visit_records([r.model_dump() for r in request.records], filters)
        return _json(
            {
                "metrics": calculate_first_visit_metrics(records),
                "new_clients_by_month": new_clients_by_month(records),
                "new_clients_by_category": new_clients_by_category(records),
                "referral_sources": referral_source_counts(records),
                "retention_by_referral": retention_by_referral(records, min_clients=min_clients),
            }
        )
    except Exception as exc:
        logger.exception("first_visit_metrics failed")
        return _error(500, exc)
