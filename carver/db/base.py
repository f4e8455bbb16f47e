from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# TEXT[] on PostgreSQL, JSON list elsewhere
StringList = JSON().with_variant(ARRAY(Text), "postgresql")

# {identity: score}
ScoreMap = JSON().with_variant(JSONB, "postgresql")
