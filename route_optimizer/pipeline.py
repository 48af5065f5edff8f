"""
Session orchestration — owns the address set for one user session.

Flow:
  ┌─────────────┐
  │ Spreadsheet │
  └──────┬──────┘
         │
  ┌──────▼──────┐
  │   Reader    │   ← Address Line 1 + City → full_address
  └──────┬──────┘
         │
  ┌──────▼──────┐
  │  Validate   │   ← Batches of 50, strictly sequential AI calls
  └──────┬──────┘
         │
  ┌──────▼──────┐
  │ Reconciler  │   ← Case-insensitive address match → VALIDATED / ERROR
  └──────┬──────┘
         │
  ┌──────▼──────┐
  │    Route    │   ← One AI call, id reconciliation, identity fallback
  └──────┬──────┘
         │
  ┌──────▼──────┐
  │   Export    │   ← Original columns + results
  └─────────────┘

State rules:
  - A failed ingestion clears the address set (nothing half-validated is kept).
  - A failed route leaves the address set and any previous route untouched.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .config import Settings, load_settings
from .llm_client import OpenAITextGenerator, TextGenerator
from .models import AddressRecord, AddressStatus, ParsedRow
from .reconciler import reconcile
from .route_client import optimize_route
from .spreadsheet import SpreadsheetSource, read_address_rows, write_workbook
from .validation_client import ProgressCallback, validate_addresses

logger = logging.getLogger(__name__)


class AddressSession:
    """Holds the address set and route for one session.

    Usage:
        session = AddressSession()
        await session.ingest(xlsx_bytes, on_progress=print)
        route = await session.optimize()
        data = session.export()
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or load_settings()
        self.generator = generator or OpenAITextGenerator(self.settings)
        self.records: list[AddressRecord] = []
        self.route: Optional[list[AddressRecord]] = None

    # ─── Counts ─────────────────────────────────────────────────────

    @property
    def validated_count(self) -> int:
        return sum(1 for r in self.records if r.status == AddressStatus.VALIDATED)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.records if r.status == AddressStatus.ERROR)

    # ─── Operations ─────────────────────────────────────────────────

    async def ingest(
        self,
        source: SpreadsheetSource,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[AddressRecord]:
        """Read, validate and reconcile a workbook, replacing the current set."""
        self.reset()
        try:
            rows = await asyncio.to_thread(read_address_rows, source)
            self.records = await self.validate_rows(rows, on_progress)
        except Exception:
            self.reset()
            raise
        logger.info(
            "Ingested %d addresses: %d validated, %d errors",
            len(self.records),
            self.validated_count,
            self.error_count,
        )
        return self.records

    async def validate_rows(
        self,
        rows: list[ParsedRow],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[AddressRecord]:
        """Validate already-read rows; ids are row ordinals starting at 0."""
        initial = [
            AddressRecord(
                id=index,
                original_data=row.original_data,
                full_address=row.full_address,
                status=AddressStatus.PROCESSING,
            )
            for index, row in enumerate(rows)
        ]
        results = await validate_addresses(
            [r.full_address for r in initial],
            self.generator,
            on_progress,
            batch_size=self.settings.batch_size,
            max_output_tokens=self.settings.max_output_tokens,
        )
        return reconcile(initial, results)

    async def optimize(self) -> list[AddressRecord]:
        """Compute a route over the validated records and remember it."""
        route = await optimize_route(
            self.records,
            self.generator,
            max_output_tokens=self.settings.max_output_tokens,
        )
        self.route = route
        return route

    def export(self) -> bytes:
        return write_workbook(self.records)

    def reset(self) -> None:
        self.records = []
        self.route = None
