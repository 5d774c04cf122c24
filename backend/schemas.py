import math
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Literal, Optional
from utils.currency import DEFAULT_CURRENCY

class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str

class User(UserBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    email: Optional[str] = None


class FriendCreate(BaseModel):
    name: str
    email: Optional[EmailStr] = None  # Links the contact to a registered account

class Friend(BaseModel):
    id: int
    user_id: int
    name: str
    email: Optional[str] = None
    linked_user_id: Optional[int] = None

    class Config:
        from_attributes = True

class FriendBalance(BaseModel):
    friend_id: int
    name: str
    linked_user_id: Optional[int] = None
    paid: float
    they_owe: float
    user_owes: float
    net: float  # Positive means they owe you, negative means you owe them

class FriendBalanceSummary(BaseModel):
    to_get: float
    to_pay: float
    friends: list[FriendBalance]


class TripBase(BaseModel):
    name: str
    budget: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    currency: str = DEFAULT_CURRENCY

class TripCreate(TripBase):
    pass

class Trip(TripBase):
    id: int
    user_id: int

    class Config:
        from_attributes = True

TripRole = Literal["admin", "editor", "viewer"]

class TripMemberCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    role: TripRole = "viewer"
    can_add_expenses: bool = False

class TripMemberUpdate(BaseModel):
    role: TripRole
    can_add_expenses: bool = False

class TripMember(BaseModel):
    id: int
    trip_id: int
    friend_id: int
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: str
    can_add_expenses: bool = False
    name: str

class TripWithMembers(Trip):
    members: list[TripMember]
    role: str  # Role of the requesting user


class ExpenseSplit(BaseModel):
    id: int
    friend_id: Optional[int] = None  # Debtor, None is the expense owner
    owed_to_friend_id: Optional[int] = None  # Creditor, None is the expense owner
    share_amount: float

    class Config:
        from_attributes = True

class ExpenseCreate(BaseModel):
    title: str
    amount: float
    currency: str = DEFAULT_CURRENCY
    date: str
    category_id: Optional[int] = None
    note: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[str] = None
    payment_mode: Literal["cash", "online", "card"] = "cash"
    trip_id: Optional[int] = None
    is_settlement: bool = False
    # Split configuration
    is_split: bool = False
    include_owner: bool = True
    friend_ids: list[int] = []
    payer_id: Optional[int] = None  # Friend who paid, None means you paid
    split_evenly: bool = True  # Only even splits are supported

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if not math.isfinite(v):
            raise ValueError('Amount must be a finite number')
        if v < 0:
            raise ValueError('Amount cannot be negative')
        return v

class ExpenseUpdate(ExpenseCreate):
    pass

class Expense(BaseModel):
    id: int
    user_id: int
    title: str
    amount: float
    currency: str
    date: str
    category_id: Optional[int] = None
    note: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[str] = None
    payment_mode: Optional[str] = None
    payer_id: Optional[int] = None
    trip_id: Optional[int] = None
    is_settlement: bool = False
    splits: list[ExpenseSplit] = []
    personal_share: float = 0.0

    class Config:
        from_attributes = True

class SplitFormState(BaseModel):
    is_split: bool
    include_owner: bool
    friend_ids: list[int]
    payer_id: Optional[int] = None


class ParticipantRef(BaseModel):
    kind: Literal["self", "friend", "account"]
    id: Optional[int] = None  # Friend id or user id, None for yourself
    name: str

class MemberBalance(BaseModel):
    participant: ParticipantRef
    paid: float
    share: float
    balance: float  # Positive means owed money, negative means owes money

class Settlement(BaseModel):
    debtor: ParticipantRef
    creditor: ParticipantRef
    amount: float
    currency: str

class SettleUpRequest(BaseModel):
    from_friend_id: Optional[int] = None  # None means you are paying
    to_friend_id: Optional[int] = None  # None means you are being paid
    amount: float = Field(gt=0, allow_inf_nan=False)

class ReminderRequest(BaseModel):
    friend_id: int
    amount: float = Field(gt=0, allow_inf_nan=False)


class Notification(BaseModel):
    id: int
    user_id: int
    sender_id: Optional[int] = None
    trip_id: Optional[int] = None
    title: str
    message: str
    type: str
    metadata: Optional[dict] = None
    is_read: bool = False


class CategoryCreate(BaseModel):
    name: str
    parent_id: Optional[int] = None

class Category(CategoryCreate):
    id: int
    user_id: int

    class Config:
        from_attributes = True

class BudgetCreate(BaseModel):
    category_id: Optional[int] = None  # None is an overall budget
    amount: float = Field(gt=0, allow_inf_nan=False)
    period: str = "monthly"

class Budget(BudgetCreate):
    id: int
    user_id: int

    class Config:
        from_attributes = True

class BudgetUsage(BaseModel):
    budget_id: int
    category_id: Optional[int] = None
    name: str
    amount: float
    spent: float

class CategorySpend(BaseModel):
    category_id: Optional[int] = None
    name: str
    value: float

class MonthlySpend(BaseModel):
    month: str
    amount: float

class DashboardSummary(BaseModel):
    total_this_month: float
    categories_used_count: int
    total_monthly_budget: float
    category_breakdown: list[CategorySpend]
    budget_usage: list[BudgetUsage]
    trend: list[MonthlySpend]
