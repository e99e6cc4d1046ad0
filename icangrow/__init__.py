"""
iCanGrow API — Cultivation ERP & Quality Management Backend
=============================================================

What:  REST API for batches, growth cycles, inventory, dispatches, procurement,
       and the embedded QMS (eBR, deviations, CAPAs, SOPs, training, audits).
Why:   One backend for the cultivation floor, the warehouse, and QA sign-off.
How:   FastAPI routes → record services → async SQLAlchemy gateway → PostgreSQL.

Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │  Routes (/api/v1/...)   auth + role gates + validation   │
    ├──────────────────────────────────────────────────────────┤
    │  Services               filters, whitelists, transitions │
    ├──────────────────────────────────────────────────────────┤
    │  Gateway                privileged / restricted sessions │
    ├──────────────────────────────────────────────────────────┤
    │  PostgreSQL             external schema (alembic-managed)│
    └──────────────────────────────────────────────────────────┘
"""

__version__ = "1.0.0"
