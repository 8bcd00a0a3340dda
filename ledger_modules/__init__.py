"""
Ledger modules.

Thin glue over ``ledger_kernel`` services.  Each module service owns its
transaction boundary (commit on success, rollback and re-raise on
failure) and is the public entry point for its area:

* ``client_payments`` -- schedules, payment requests, postings.
* ``ops_payments`` -- operational expense approvals.
* ``cases`` -- arbitration case records and hearing emails.
* ``counterparties`` -- institution registry and name resolution.
"""
