# backend/models/users.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func

from database import Base
from utils.permissions import permissions_for_role

# Represents a user account with authentication details and system role.
# Role is one of superadmin / admin / user; capabilities derive from it.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def permissions(self):
        return permissions_for_role(self.role)

    def has_permission(self, name):
        return self.permissions.get(name, False)
