"""Domain models and errors.

Why:
- Pure data structures (Pydantic v2) and the error taxonomy live here.
- The domain knows nothing about HTTP, the CLI, or SDKs.
"""
