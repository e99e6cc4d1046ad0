# Schemas package init
"""
Pydantic request/response models, one module per route family.

Request bodies derive from common.RequestModel; every 2xx body is wrapped in
common.Envelope, every listing in common.Page.
"""
