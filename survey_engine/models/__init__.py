"""ORM Models — SQLAlchemy declarative models for the survey aggregate.

Invariants:
    - All models inherit from Base (db/base.py)
    - Survey is the aggregate root; respondent rows are scoped by survey_id

Design Decisions:
    - One file per table
    - All models imported here so Base.metadata holds every table before
      create_all or an alembic autogenerate runs
"""

from survey_engine.models.survey import Survey  # noqa: F401
from survey_engine.models.survey_respondent import SurveyRespondent  # noqa: F401
