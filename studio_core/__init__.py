"""Core (UI-agnostic) studio report logic.

This package contains:
- workbook loading (XLS/XLSX bytes -> raw rows via pandas)
- cell coercion and row classification heuristics
- payroll and first-visit report parsers
- filter normalization and metric reducers (JSON-serializable payloads)
"""
