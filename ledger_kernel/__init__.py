"""
Ledger Kernel

The recurring payment obligation ledger:
- Per-client installment schedules with partial-payment tracking
- A two-party approval workflow for every payment and expense
- Field-level change detection that invalidates sent notifications
- Full auditability via hash chain
"""

__version__ = "0.1.0"
