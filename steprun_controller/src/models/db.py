"""
Database models for exported run records.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id = Column(String(36), primary_key=True)
    pipeline = Column(String(255), nullable=False)
    event_kind = Column(String(50), nullable=False)
    event_metadata = Column(JSON)
    status = Column(String(50), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    steps = relationship(
        "PipelineStep",
        back_populates="run",
        order_by="PipelineStep.step_order",
        cascade="all, delete-orphan",
    )

class PipelineStep(Base):
    __tablename__ = "pipeline_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), ForeignKey("pipeline_runs.id", ondelete="CASCADE"))
    name = Column(String(255), nullable=False)
    step_order = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    exit_info = Column(JSON)

    run = relationship("PipelineRun", back_populates="steps")
