"""Database models for the town control ledger."""

from sqlalchemy import BigInteger, Column, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TownRecord(Base):
    """Control state of one capturable town."""

    __tablename__ = "towns"

    id = Column(String(64), primary_key=True)  # see TownLedger.derive_id
    icon_code = Column(Integer, nullable=False)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    region = Column(String(100), nullable=False, index=True)

    current_faction = Column(String(16), nullable=False)
    previous_faction = Column(String(16))
    last_change_at = Column(BigInteger, nullable=False)  # epoch ms
    label = Column(Text)

    # Bookkeeping, refreshed on every observation
    flags = Column(Integer, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    __table_args__ = (Index("idx_towns_coords", "x", "y"),)

    def __repr__(self) -> str:
        return f"<TownRecord {self.id} {self.region} {self.current_faction}>"
