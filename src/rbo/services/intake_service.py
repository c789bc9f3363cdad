from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Iterable, Optional

from rbo.domain.results import ExtractionResult, ParseError, Parsed
from rbo.extraction import extract_document
from rbo.extraction.tax import DEFAULT_TAX_RATE
from rbo.services.upload_session import UploadSession

log = logging.getLogger("rbo.intake")


class IntakeService:
    def __init__(self, repo, tax_rate: float = DEFAULT_TAX_RATE):
        self.repo = repo
        self.tax_rate = float(tax_rate)

    def extract_bytes(
        self,
        name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        company_id: Optional[str] = None,
    ) -> ExtractionResult:
        """Never raises: anything unexpected while reading one file becomes ParseError."""
        try:
            categories = self.repo.list_categories(company_id)
            return extract_document(name, data, mime_type, tax_rate=self.tax_rate, categories=categories)
        except Exception as e:
            log.exception("document_failed name=%s", name)
            return ParseError(str(e))

    def extract_file(self, path: str | Path, company_id: Optional[str] = None) -> ExtractionResult:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            log.warning("document_unreadable path=%s error=%s", p, e)
            return ParseError(f"Cannot read {p.name}: {e}")
        mime, _ = mimetypes.guess_type(p.name)
        return self.extract_bytes(p.name, data, mime, company_id)

    def load_files(
        self,
        session: UploadSession,
        paths: Iterable[str | Path],
        company_id: Optional[str] = None,
        replace: bool = False,
    ) -> list[tuple[str, ExtractionResult]]:
        """
        Extract each file and add the ones with items to the session.
        Returns (file name, result) per file so the caller can alert on
        ParseError and report Empty ones.
        """
        if replace:
            session.clear()
        results = []
        for path in paths:
            name = Path(path).name
            result = self.extract_file(path, company_id)
            if isinstance(result, Parsed):
                session.add_document(name, result.items)
            results.append((name, result))
        return results
