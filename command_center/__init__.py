"""
Command Center Backend Package.

FastAPI service layer for the agency campaign command center: classifies each
client's outreach performance into one issue bucket, scores portfolio health,
generates daily and weekly tasks, and answers operational questions from the
terminal page.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Classification pipeline and query routing
    - jobs: Daily automation jobs
"""

__version__ = "1.0.0"
