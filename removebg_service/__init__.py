"""
remove.bg background removal workflow package.

Exposes reusable primitives for validating uploads, calling the remove.bg
API, driving the upload/remove/download/share workflow, and serving the
FastAPI application.
"""
