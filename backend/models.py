from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from database import Base
from utils.currency import DEFAULT_CURRENCY


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    full_name = Column(String)
    is_active = Column(Boolean, default=True)


class Friend(Base):
    """A contact owned by one account, optionally linked to another account."""
    __tablename__ = "friends"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)  # Owner of the contact
    name = Column(String)
    email = Column(String, nullable=True)
    linked_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String)
    budget = Column(Float, nullable=True)
    start_date = Column(String, nullable=True)
    end_date = Column(String, nullable=True)
    currency = Column(String, default=DEFAULT_CURRENCY)
    created_at = Column(DateTime, default=datetime.utcnow)


class TripMember(Base):
    __tablename__ = "trip_members"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), index=True)
    friend_id = Column(Integer, ForeignKey("friends.id"))  # Contact record of the trip owner
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # Linked account, if any
    email = Column(String, nullable=True)
    role = Column(String, default="viewer")  # owner, admin, editor, viewer
    can_add_expenses = Column(Boolean, default=False)

    friend = relationship("Friend")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)


class Budget(Base):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)  # NULL is the overall budget
    period = Column(String, default="monthly")
    amount = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)  # Owner
    title = Column(String)
    amount = Column(Float)
    currency = Column(String, default=DEFAULT_CURRENCY)
    date = Column(String)  # ISO date string
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    note = Column(String, nullable=True)
    is_recurring = Column(Boolean, default=False)
    recurring_frequency = Column(String, nullable=True)
    payer_id = Column(Integer, ForeignKey("friends.id"), nullable=True)  # NULL means the owner paid
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)
    payment_mode = Column(String, default="cash")
    is_settlement = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    splits = relationship(
        "ExpenseSplit",
        cascade="all, delete-orphan",
        order_by="ExpenseSplit.id",
        back_populates="expense"
    )


class ExpenseSplit(Base):
    """One ledger line: the debtor owes the creditor share_amount. NULL is the owner."""
    __tablename__ = "expense_splits"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), index=True)
    friend_id = Column(Integer, ForeignKey("friends.id"), nullable=True)  # Debtor
    owed_to_friend_id = Column(Integer, ForeignKey("friends.id"), nullable=True)  # Creditor
    share_amount = Column(Float)

    expense = relationship("Expense", back_populates="splits")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)  # Recipient
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True)
    title = Column(String)
    message = Column(String)
    type = Column(String)  # expense, settlement, reminder
    details = Column("metadata", JSON, nullable=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
