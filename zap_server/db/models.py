# zap_server/db/models.py

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    """Zap owner. Google tokens are written by the login flow and read by the mailbox adapter."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)  # UUID
    email = Column(String, nullable=True, index=True)
    address = Column(String, nullable=True, index=True)  # wallet address
    google_access_token = Column(Text, nullable=True)
    google_refresh_token = Column(Text, nullable=True)
    google_token_expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Zap(Base):
    """One trigger plus an ordered list of actions."""

    __tablename__ = "zaps"

    id = Column(String, primary_key=True)  # UUID
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active", index=True)  # "active", "deleted"
    user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    trigger = relationship("Trigger", back_populates="zap", uselist=False, cascade="all, delete-orphan")
    actions = relationship(
        "Action",
        back_populates="zap",
        order_by="Action.sorting_order",
        cascade="all, delete-orphan",
    )


class Trigger(Base):
    __tablename__ = "triggers"

    id = Column(String, primary_key=True)  # UUID
    zap_id = Column(String, ForeignKey("zaps.id"), nullable=False, unique=True)
    type = Column(String, nullable=False, index=True)  # "gmail", "price", "webhook"
    trigger_metadata = Column("metadata", JSON, nullable=False, default=dict)

    zap = relationship("Zap", back_populates="trigger")


class Action(Base):
    __tablename__ = "actions"
    __table_args__ = (UniqueConstraint("zap_id", "sorting_order", name="uq_actions_zap_order"),)

    id = Column(String, primary_key=True)  # UUID
    zap_id = Column(String, ForeignKey("zaps.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # "EMAIL", "WEBHOOK", "SLACK", ...
    action_metadata = Column("metadata", JSON, nullable=False, default=dict)
    sorting_order = Column(Integer, nullable=False, default=0)

    zap = relationship("Zap", back_populates="actions")


class ZapRun(Base):
    """One execution attempt of a zap's action list."""

    __tablename__ = "zap_runs"

    id = Column(String, primary_key=True)  # UUID
    zap_id = Column(String, ForeignKey("zaps.id"), nullable=False, index=True)
    status = Column(String, nullable=False, index=True)  # "running", "completed", "partially_completed", "failed"
    run_metadata = Column("metadata", JSON, nullable=True)  # trigger payload + action results
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    action_runs = relationship("ActionRun", back_populates="zap_run", order_by="ActionRun.created_at")


class ActionRun(Base):
    """Outcome of one action within a ZapRun."""

    __tablename__ = "action_runs"

    id = Column(String, primary_key=True)  # UUID
    action_id = Column(String, ForeignKey("actions.id", ondelete="SET NULL"), nullable=True, index=True)
    zap_run_id = Column(String, ForeignKey("zap_runs.id"), nullable=False, index=True)
    status = Column(String, nullable=False)  # "running", "success", "failed"
    message = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    run_metadata = Column("metadata", JSON, nullable=True)  # action metadata snapshot at run time
    created_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    zap_run = relationship("ZapRun", back_populates="action_runs")
