# schemas/reconciliation.py
"""
Pydantic schemas for the reconciliation auditor.

A report is produced in both dry-run and apply mode so an operator can review
the findings before anything is written.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field


class ReconciliationRequest(BaseModel):
     identity_key: Optional[str] = Field(
          None, description='Customer key ("legacy:7" / "external:abc"); omit for all customers'
     )
     dry_run: bool = True


class BalanceSnapshot(BaseModel):
     points: int = 0
     total_earned: int = 0
     total_redeemed: int = 0


class MissingAward(BaseModel):
     order_id: int
     total: Decimal
     points: int
     created_at: datetime


class ReconciliationReport(BaseModel):
     identity_key: str
     dry_run: bool
     applied: bool = False
     ledger: BalanceSnapshot
     missing_orders: List[MissingAward] = Field(default_factory=list)
     missing_points: int = 0
     expected: BalanceSnapshot
     balance_rows: int = 0
     duplicate_row_ids: List[int] = Field(default_factory=list)
     before: Optional[BalanceSnapshot] = None
     after: Optional[BalanceSnapshot] = None
     discrepancy: bool = False
     unique_index_present: bool = True


class ReconciliationSummary(BaseModel):
     dry_run: bool
     identities_checked: int
     identities_with_discrepancy: int
     missing_orders: int
     duplicate_rows: int
     reports: List[ReconciliationReport]
