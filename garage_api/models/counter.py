"""
Named sequence counters used to mint human readable identifiers.
"""
from sqlalchemy import Column, Integer, String

from garage_api.database import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)
