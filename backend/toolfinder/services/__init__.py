"""Services Layer — catalog gateway, resolution funnel, tool extraction, orchestration.

Invariants:
    - Services receive collaborators through constructors (protocols from core/)
    - Every database operation opens its own session through the injected scope

Design Decisions:
    - One service per pipeline stage for locality (ADR: ExMA no god objects)
"""
