"""
Module: ledger_kernel.models.counterparty
Responsibility: ORM persistence for the canonical counterparty registry
    (financial institutions with a postal address and contact emails).
Architecture position: Kernel > Models.

Invariants enforced:
    - name is unique.
    - emails is always a JSON list of trimmed, non-blank strings.
"""

from __future__ import annotations

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.counterparty import CounterpartyContact


class CounterpartyRecord(TrackedBase):
    """One canonical institution."""

    __tablename__ = "counterparties"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    emails: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<CounterpartyRecord {self.name}>"

    def to_contact(self) -> CounterpartyContact:
        return CounterpartyContact(
            name=self.name,
            address=self.address,
            emails=tuple(self.emails or ()),
        )
