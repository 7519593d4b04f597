"""
Lead import parsing.

Two inputs feed the leads table in bulk:
- CSV uploads with a header row (name, email, company, source)
- Pasted text, one `name, email[, company]` per line

Parsing never touches the database; the caller inserts the batch.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from pydantic import BaseModel, EmailStr, ValidationError

from ..models.enums import LeadSource


logger = logging.getLogger(__name__)


class _EmailCheck(BaseModel):
    email: EmailStr


@dataclass
class ImportBatch:
    """Leads ready for insert plus per-row problems for the user."""

    leads: List[Dict[str, str]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def normalize_email(email: str) -> str:
    """
    Validate an email address and return it normalized.

    Raises:
        ValueError: Address is not a valid email
    """
    try:
        return str(_EmailCheck(email=email).email)
    except ValidationError as e:
        raise ValueError(f"Invalid email: {email}") from e


def parse_csv_leads(text: str) -> ImportBatch:
    """
    Parse a CSV export into leads.

    Header names are matched case-insensitively. Rows without a name or
    email are dropped silently; rows with a malformed email are reported.
    """
    batch = ImportBatch()
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if reader.fieldnames is None:
        return batch
    reader.fieldnames = [(name or "").strip().lower() for name in reader.fieldnames]

    for line_number, row in enumerate(reader, start=2):
        name = (row.get("name") or "").strip()
        email = (row.get("email") or "").strip()
        if not name or not email:
            continue
        try:
            email = normalize_email(email)
        except ValueError as e:
            batch.errors.append(f"Row {line_number}: {e}")
            continue
        batch.leads.append({
            "name": name,
            "email": email,
            "company": (row.get("company") or "").strip(),
            "source": (row.get("source") or "").strip() or LeadSource.CSV.value,
        })

    logger.info(f"Parsed CSV import: {len(batch.leads)} leads, {len(batch.errors)} errors")
    return batch


def parse_bulk_leads(text: str) -> ImportBatch:
    """Parse pasted `name, email[, company]` lines into leads."""
    batch = ImportBatch()
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        name = parts[0]
        email = parts[1] if len(parts) > 1 else ""
        company = parts[2] if len(parts) > 2 else ""
        if not name or not email:
            continue
        try:
            email = normalize_email(email)
        except ValueError as e:
            batch.errors.append(str(e))
            continue
        batch.leads.append({
            "name": name,
            "email": email,
            "company": company,
            "source": LeadSource.BULK.value,
        })

    logger.info(f"Parsed bulk import: {len(batch.leads)} leads, {len(batch.errors)} errors")
    return batch
