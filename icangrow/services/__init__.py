# Services package init
"""
iCanGrow API — Services Layer
===============================

What:  Business logic between routes (HTTP) and the gateway (persistence).
How:   Services are stateless module-level singletons; every method receives
       the request's AsyncSession as its first argument.

Service Inventory:
    - base.RecordService:   list / get / exists / create / update / delete
                            with filter, search and transition plumbing
    - ebr_service:          eBR lifecycle, checklist, statistics
    - cultivation_service:  strains, growth cycles, batches, stages
    - quality_service:      deviations, CAPAs, SOPs, training, environment,
                            the QMS record register and its metrics
    - production_service:   daily logs, packaging runs, finished goods,
                            waste, QA batch review
    - audit_service:        audits and the audit-log trail
    - commerce_service:     suppliers, purchase orders, clients, dispatches
    - inventory_service:    lots, stock adjustments, quarantine, stats
    - user_service:         profiles and invitations (admin)
    - auth_service:         signup, login, tokens, password flows
    - ops_service:          admin-only operational listings
"""
