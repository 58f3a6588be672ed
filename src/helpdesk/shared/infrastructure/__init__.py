"""
Infrastructure Layer
=====================

Low-level technical concerns shared across the service, currently the
structured logging setup.
"""
