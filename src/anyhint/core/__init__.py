"""
Core Package.

Contains the annotation pipeline backend:
- Annotation Engine and Result
- Source Tree and Document (offset edits)
- Import Injection
- Per-buffer Context and Trace Logger
"""
