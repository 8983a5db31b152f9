from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, UniqueConstraint, func

from app.db.base import Base


class StaffUserRecord(Base):
    __tablename__ = "staff_users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_staff_users_username"),
        CheckConstraint(
            "role IN ('admin', 'maker', 'checker', 'accountant')",
            name="ck_staff_users_role",
        ),
    )

    id = Column(String(36), primary_key=True)
    username = Column(String(100), nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default="true")
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
