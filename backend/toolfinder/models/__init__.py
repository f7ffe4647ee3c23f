"""ORM Models — SQLAlchemy declarative models for the catalog and its queue.

Invariants:
    - All models inherit from Base (db/base.py)
    - Tool is referenced weakly by Problem (SET NULL), never owned

Design Decisions:
    - One file per entity for locality
    - All models imported here so metadata is complete before create_all/alembic
      autogenerate runs (ADR: standard SQLAlchemy pattern)
"""

from toolfinder.models.tool import Tool  # noqa: F401
from toolfinder.models.problem import Problem  # noqa: F401
from toolfinder.models.prompt import Prompt  # noqa: F401
from toolfinder.models.queued_job import QueuedJob  # noqa: F401
