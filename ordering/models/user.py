"""
SQLAlchemy User model

Accounts are managed by the identity service. Rows here are an optional
directory of display names: user ids on orders, redemptions and loyalty
accounts come from gateway headers and carry no foreign key. A caller
without a row simply has no display name.
"""
from sqlalchemy import Column, Integer, String
from ordering.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
