"""
Shared Kernel Module
====================

Generic infrastructure used by the tickets bounded context: structured
logging and the HTTP middleware stack.

DO NOT add ticket lifecycle or SLA rules to the shared kernel.
"""
