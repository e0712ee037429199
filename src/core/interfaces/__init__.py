"""Core interfaces.

Why:
- Defines contracts (Protocol) implemented by concrete adapters.
- Inverts dependencies: the services depend on abstractions, tests plug in fakes.
"""
