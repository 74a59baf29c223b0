from __future__ import annotations

import os
from dataclasses import dataclass

from page_inserter.domain.models import FitPolicy


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _get_policy_env(name: str, default: FitPolicy) -> FitPolicy:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return FitPolicy(value.strip().lower())
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    max_pdf_size_mb: int = _get_int_env("PDF_INSERTER_MAX_PDF_MB", 50)
    max_batch_size_mb: int = _get_int_env("PDF_INSERTER_MAX_BATCH_MB", 100)
    page_batch_size: int = _get_int_env("PDF_INSERTER_PAGE_BATCH", 50)
    fit_policy: FitPolicy = _get_policy_env("PDF_INSERTER_FIT_POLICY", FitPolicy.SCALED_FIT)
    pause_between_batches: bool = _get_bool_env("PDF_INSERTER_PAUSE_BETWEEN_BATCHES", True)
    report_every_page: bool = _get_bool_env("PDF_INSERTER_REPORT_EVERY_PAGE", False)
    default_filler_path: str = os.getenv("PDF_INSERTER_DEFAULT_FILLER", "assets/insert.pdf")
    log_level: str = os.getenv("PDF_INSERTER_LOG_LEVEL", "INFO")

    @property
    def max_pdf_size_bytes(self) -> int:
        return self.max_pdf_size_mb * 1024 * 1024

    @property
    def max_batch_size_bytes(self) -> int:
        return self.max_batch_size_mb * 1024 * 1024
