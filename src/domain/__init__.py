"""Quotation domain: records, pricing, currency display and version history.

Everything here works on in-memory Pydantic aggregates and returns new
copies; persistence lives in ``db`` and orchestration in ``services``.
"""

__all__ = [
    "assembler",
    "currency",
    "engine",
    "errors",
    "pricing",
    "quotation",
    "versioning",
]
