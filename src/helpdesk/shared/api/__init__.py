"""
Shared API Layer
================

FastAPI middleware and exception handlers common to every router.
"""
