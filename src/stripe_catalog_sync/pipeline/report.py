"""
Run report shared by the export and import pipelines
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..models import CatalogRecord


class Outcome(str, Enum):
    EXPORTED = "exported"
    WOULD_EXPORT = "would_export"
    CREATED = "created"
    WOULD_CREATE = "would_create"
    SKIPPED = "skipped"


@dataclass
class Decision:
    """What a pipeline decided for one product or row"""
    outcome: Outcome
    code: str = ""
    row_number: Optional[int] = None
    reason: str = ""
    product_id: str = ""
    price_id: str = ""


@dataclass
class RunReport:
    command: str
    dry_run: bool = False
    decisions: List[Decision] = field(default_factory=list)
    output_path: Optional[Path] = None
    records: List[CatalogRecord] = field(default_factory=list)
    pages_fetched: int = 0
    started_at: float = field(default_factory=time.time)

    def add(self, outcome: Outcome, **details) -> Decision:
        decision = Decision(outcome=outcome, **details)
        self.decisions.append(decision)
        return decision

    def count(self, outcome: Outcome) -> int:
        return sum(1 for d in self.decisions if d.outcome == outcome)

    @property
    def created(self) -> int:
        return self.count(Outcome.CREATED)

    @property
    def skipped(self) -> int:
        return self.count(Outcome.SKIPPED)

    @property
    def exported(self) -> int:
        return self.count(Outcome.EXPORTED) + self.count(Outcome.WOULD_EXPORT)

    def skip_reasons(self) -> List[str]:
        return [d.reason for d in self.decisions if d.outcome == Outcome.SKIPPED]

    def log_summary(self, logger: logging.Logger) -> None:
        """Log the closing summary of the run"""
        elapsed = time.time() - self.started_at
        status = "DRY RUN" if self.dry_run else "LIVE"
        logger.info("=" * 60)
        logger.info(f"{self.command.upper()} SUMMARY [{status}]")
        if self.command == "export":
            logger.info(f"Pages fetched:   {self.pages_fetched}")
            logger.info(f"Products:        {self.exported}")
        else:
            logger.info(f"Rows processed:  {len(self.decisions)}")
            logger.info(f"Created:         {self.created}")
            if self.dry_run:
                logger.info(f"Would create:    {self.count(Outcome.WOULD_CREATE)}")
            logger.info(f"Skipped:         {self.skipped}")
        if self.output_path:
            logger.info(f"Output:          {self.output_path}")
        logger.info(f"Time taken:      {elapsed:.1f} seconds")
        logger.info("=" * 60)
