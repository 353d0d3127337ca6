"""
Per-domain repository modules for database access.

Routers and services import the module for their domain, e.g.
`from erp.db.repositories import customers as customer_repo`.
"""
