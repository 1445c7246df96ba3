"""Policy, claim, complaint and service request references from program formats.

A program stores a format per reference type, for example
``{product_prefix}-{YY}{MM}-{sequence:6}``. Programs without a format get a
timestamp reference.
"""

import random
import re
import time
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.policy_repository import ProgramRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

REFERENCE_TYPES = ("claim_number", "policy_number", "complaint_reference", "service_request_reference")

DEFAULT_PREFIXES = {"claim_number": "CLM", "policy_number": "POL"}

_PRODUCT_PREFIXES = (
    (re.compile(r"extended.*warranty|EW", re.IGNORECASE), "EW"),
    (re.compile(r"insurance.*lite|IL", re.IGNORECASE), "IL"),
    (re.compile(r"insurance.*max|IM", re.IGNORECASE), "IM"),
)
_PADDED_TOKEN_RE = re.compile(r"\{(sequence|random):(\d+)\}")


def _millis() -> int:
    return int(time.time() * 1000)


def product_prefix(product_name: str) -> str:
    for pattern, prefix in _PRODUCT_PREFIXES:
        if pattern.search(product_name):
            return prefix
    return "EW"


def _padded_number(match: re.Match) -> str:
    width = int(match.group(2))
    return str(random.randrange(10**width)).zfill(width)


def render_reference(
    reference_format: str,
    program_id: str,
    product_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Expand the tokens of ``reference_format``.

    Sequences are random numbers of the given width; nothing reserves them.
    """
    now = now or datetime.now()
    reference = (
        reference_format.replace("{YYYY}", f"{now.year:04d}")
        .replace("{YY}", f"{now.year % 100:02d}")
        .replace("{MM}", f"{now.month:02d}")
        .replace("{DD}", f"{now.day:02d}")
    )
    if product_name:
        reference = reference.replace("{product_prefix}", product_prefix(product_name))
    reference = reference.replace("{program_code}", program_id[:3].upper())
    return _PADDED_TOKEN_RE.sub(_padded_number, reference)


def default_reference(reference_type: str) -> str:
    return f"{DEFAULT_PREFIXES.get(reference_type, 'REF')}-{_millis()}"


class ReferenceGenerator:
    def __init__(self, db_session: AsyncSession):
        self.programs = ProgramRepository(db_session)

    async def generate(
        self,
        program_id: Optional[UUID],
        reference_type: str,
        product_name: Optional[str] = None,
    ) -> str:
        """Next reference of ``reference_type`` for a program.

        Args:
            program_id: Program whose formats apply, or None for the default format
            reference_type: One of REFERENCE_TYPES
            product_name: Used for the {product_prefix} token

        Returns:
            The reference string. Lookup failures fall back to a timestamp reference.
        """
        if program_id is None:
            return default_reference(reference_type)

        try:
            program = await self.programs.get_by_id(program_id)
        except SQLAlchemyError as e:
            LOGGER.error(f"Error generating reference number: {e}", extra={"program_id": str(program_id)})
            return f"{reference_type.upper()[:3]}-{_millis()}"

        if program is None:
            LOGGER.warning("Program not found for reference", extra={"program_id": str(program_id)})
            return f"{reference_type.upper()[:3]}-{_millis()}"

        format_config = (program.reference_formats or {}).get(reference_type) or {}
        reference_format = format_config.get("format")
        if not reference_format:
            return default_reference(reference_type)

        return render_reference(reference_format, str(program_id), product_name)
