# backend/models/sequence.py
from sqlalchemy import Column, Integer, String, BigInteger
from database import Base

# One row per named sequence; the row is locked while a value is drawn
class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    current_value = Column(BigInteger, nullable=False, default=0)
