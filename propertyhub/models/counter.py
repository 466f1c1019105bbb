from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from propertyhub.models.base import Base


class Counter(Base):
    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(80), primary_key=True)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
