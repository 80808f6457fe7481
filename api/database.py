"""
Database schema and operations for processed orders and their export runs
"""

from sqlalchemy import create_engine, Column, String, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime
import json

from recon.config import DATABASE_PATH

engine = create_engine(
    f"sqlite:///{DATABASE_PATH}",
    echo=False,
    connect_args={"check_same_thread": False},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class Order(Base):
    """One processed order form"""
    __tablename__ = "orders"

    id = Column(String, primary_key=True)
    source_filename = Column(String, nullable=True)
    source_kind = Column(String, nullable=False, default="json")  # json | text
    ocr_text = Column(Text, nullable=True)
    items_json = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    export_runs = relationship(
        "ExportRun",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ExportRun.id",
    )

    @property
    def items(self) -> list:
        return json.loads(self.items_json or "[]")


class ExportRun(Base):
    """One call to the export retry loop for an order"""
    __tablename__ = "export_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String, ForeignKey("orders.id"), nullable=True)

    status = Column(String, nullable=False)  # succeeded | failed
    kind = Column(String, nullable=True)  # FailureKind value when failed
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    history_json = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order = relationship("Order", back_populates="export_runs")

    @property
    def history(self) -> list:
        return json.loads(self.history_json or "[]")


def init_order_tables():
    """Create order tables if they don't exist"""
    DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)


def get_db():
    """Get database session (dependency injection for FastAPI)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


if __name__ == "__main__":
    init_order_tables()
