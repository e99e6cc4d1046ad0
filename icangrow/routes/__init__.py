# Routes package init
"""
iCanGrow API — Route Modules
==============================

Route Inventory (all under /api/v1 except health):
    - auth.py:          /auth/*            signup, login, tokens, passwords
    - users.py:         /users             admin user management, invitations
    - cultivation.py:   /erp/strains, /erp/growth_cycles, /erp/batches
    - stages.py:        /stages            stage catalogue, batch stage progress
    - production.py:    /erp/daily_logs, /erp/packaging, /erp/finished_goods,
                        /erp/waste, /erp/review
    - ebr.py:           /qms/ebr           electronic batch record review
    - quality.py:       /qms/deviations, /qms/capas, /qms/sops,
                        /qms/training, /qms/environment, /qms/records,
                        /qms/metrics
    - audits.py:        /audits, /audit-logs
    - commerce.py:      /suppliers, /purchase-orders, /clients, /dispatches
    - inventory.py:     /inventory
    - ops.py:           /ops               admin-only operational listings
    - health.py:        /health

Routes stay thin: parse the request, check the caller's role, call one
service method, wrap the result in the success envelope.
"""
