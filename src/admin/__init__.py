"""
Admin System Module

Back-office operations for the charter team:

- Booking review: approve, propose priced revisions, assign crew, complete,
  cancel with refunds, and delete with explicit confirmation
- Ledger review: approve or reject pending top-ups and bank transfers
- Operations dashboard with booking counts, ledger totals and upcoming flights

Every endpoint requires the admin role forwarded by the auth gateway and
delegates to the same BookingService and TransactionService used by clients.
"""

from . import router, schemas, admin_service

__all__ = [
    "router",
    "schemas",
    "admin_service"
]
