"""Pydantic models for SEC EDGAR data."""

from __future__ import annotations

from pydantic import BaseModel


class RegistryEntity(BaseModel):
    """A ticker resolved against the SEC company directory."""

    cik: str  # unpadded, e.g. "789019"
    name: str

    @property
    def padded_cik(self) -> str:
        return self.cik.zfill(10)


class FilingDocuments(BaseModel):
    """Document links found on a filing index page."""

    html_url: str | None = None
    text_url: str | None = None
