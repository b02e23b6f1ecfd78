"""
Catalog ingestion.

Responsibilities:
- Read raw menu, category and order-line exports from the ordering platform.
- Normalize them into the canonical item / category / order-line schemas.
- Persist the canonical CSVs that ``DataFrameItemStore`` reads.
"""
